"""HTTP endpoints for product ingestion, search and bulk jobs.

Request handlers are synchronous; all storefront work runs on one
background event loop (``IngestRuntime``), so the product cache and the
bulk job are only touched from that loop's thread.
"""

import sys
from pathlib import Path
from typing import Optional, Tuple, Union

from flask import Blueprint, Response, jsonify, request
from werkzeug.exceptions import HTTPException

# The storefront package lives at the repository root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from storefront.attributes import facet_match_score, infer_facets, is_likely_sauna_product  # noqa: E402
from storefront.bulk import JobManager  # noqa: E402
from storefront.config import BulkSettings  # noqa: E402
from storefront.errors import InvalidHandle, JobConflict, ProductNotFound  # noqa: E402
from storefront.formatting import (  # noqa: E402
    format_product_full,
    format_product_info_only,
    format_product_overview,
)
from storefront.logging_config import get_logger  # noqa: E402
from storefront.loop import BackgroundLoop  # noqa: E402
from storefront.service import ProductService  # noqa: E402
from storefront.url_validation import parse_handle_list  # noqa: E402

# Handle imports for both direct execution and package import
if __package__ is None or __package__ == "":
    from config import MAX_SEARCH_LIMIT, WEB_CALL_TIMEOUT
else:
    from .config import MAX_SEARCH_LIMIT, WEB_CALL_TIMEOUT

__all__ = ["api", "IngestRuntime", "get_runtime", "set_runtime"]

logger = get_logger("web")

api = Blueprint("api", __name__)

TEXT_FORMATS = {
    "text": format_product_full,
    "overview": format_product_overview,
    "info": format_product_info_only,
}

FACET_FILTERS = ("placement", "heat", "heater_type", "style", "capacity", "power", "budget")

JsonResponse = Union[Response, Tuple[Response, int]]


class IngestRuntime:
    """Product service, bulk job manager and the loop they run on."""

    def __init__(
        self,
        service: Optional[ProductService] = None,
        settings: Optional[BulkSettings] = None,
        call_timeout: float = WEB_CALL_TIMEOUT,
    ):
        self.loop = BackgroundLoop(name="StorefrontWebLoop")
        self.service = service or ProductService()
        self.jobs = JobManager(self.service.ingest, settings)
        self.call_timeout = call_timeout

    def run(self, coro):
        return self.loop.run(coro, self.call_timeout)

    def call(self, fn, *args):
        return self.loop.call(fn, *args, timeout=self.call_timeout)

    def close(self) -> None:
        self.run(self.service.aclose())
        self.loop.stop()


_runtime: Optional[IngestRuntime] = None


def get_runtime() -> IngestRuntime:
    """The process-wide runtime, created on first use."""
    global _runtime
    if _runtime is None:
        _runtime = IngestRuntime()
    return _runtime


def set_runtime(runtime: Optional[IngestRuntime]) -> Optional[IngestRuntime]:
    """Swap the process-wide runtime (tests); returns the previous one."""
    global _runtime
    previous, _runtime = _runtime, runtime
    return previous


# ---------- ERROR HANDLING ----------


@api.errorhandler(JobConflict)
def _job_conflict(e: JobConflict) -> JsonResponse:
    return jsonify({"error": str(e)}), 409


@api.errorhandler(ProductNotFound)
def _not_found(e: ProductNotFound) -> JsonResponse:
    return jsonify({"error": "Not found", "handle": e.handle}), 404


@api.errorhandler(InvalidHandle)
def _invalid_handle(e: InvalidHandle) -> JsonResponse:
    return jsonify({"error": str(e)}), 400


@api.errorhandler(Exception)
def _unexpected(e: Exception):
    if isinstance(e, HTTPException):
        return e
    logger.exception(f"Unhandled error on {request.method} {request.path}: {e}")
    return jsonify({"error": str(e) or type(e).__name__}), 500


# ---------- DIAGNOSTICS ----------


@api.route("/health", methods=["GET"])
def health() -> Response:
    """Store reachability check."""
    rt = get_runtime()
    return jsonify(rt.run(rt.service.health()))


@api.route("/debug", methods=["GET"])
def debug() -> Response:
    """Cached handles, oldest first."""
    cache = get_runtime().service.cache
    handles = get_runtime().call(cache.handles)
    return jsonify({"cached_handles": handles, "cached_count": len(handles)})


# ---------- INGESTION ----------


@api.route("/ingest/<handle>", methods=["GET"])
def ingest_one(handle: str) -> JsonResponse:
    """Resolve a handle through the cache, fetching it on a miss."""
    rt = get_runtime()
    record = rt.run(rt.service.ensure_product(handle))
    if record is None:
        return jsonify({"error": "Not found"}), 404
    return jsonify({
        "ok": True,
        "handle": record.handle,
        "cached": rt.call(lambda: record.handle in rt.service.cache),
    })


@api.route("/ingest/all", methods=["GET"])
def ingest_all() -> JsonResponse:
    """Start a bulk ingest.

    Query params:
        handles: Comma-separated handles (default: the whole catalog)
        limit: Ingest at most this many handles
    """
    rt = get_runtime()
    if rt.call(lambda: rt.jobs.is_running):
        return jsonify({"error": "Bulk ingest already running"}), 409

    handles = parse_handle_list(request.args.get("handles"))
    if not handles:
        handles = rt.run(rt.service.search.list_all_handles())

    limit = request.args.get("limit", default=0, type=int)
    if limit and limit > 0:
        handles = handles[:limit]

    if not handles:
        return jsonify({"error": "No products found"}), 404

    job = rt.run(rt.jobs.start(handles))
    return jsonify({
        "ok": True,
        "message": f"Started bulk ingest of {job.total} products",
        **job.settings.describe(),
    }), 202


@api.route("/ingest/status", methods=["GET"])
def ingest_status() -> Response:
    rt = get_runtime()
    return jsonify(rt.call(rt.jobs.status))


@api.route("/ingest/cancel", methods=["POST"])
def ingest_cancel() -> Response:
    rt = get_runtime()
    return jsonify({"ok": True, "message": rt.call(rt.jobs.cancel)})


# ---------- PRODUCTS & SEARCH ----------


@api.route("/products/<handle>", methods=["GET"])
def product(handle: str) -> Union[Response, str]:
    """Normalized record as JSON, or as text with ?format=text|overview|info."""
    rt = get_runtime()
    record = rt.run(rt.service.require_product(handle))
    fmt = request.args.get("format", "json")
    if fmt in TEXT_FORMATS:
        return Response(TEXT_FORMATS[fmt](record), mimetype="text/plain")
    return jsonify(record.to_dict())


@api.route("/products/<handle>/facets", methods=["GET"])
def product_facets(handle: str) -> Response:
    """Inferred facets.

    Any of ?placement=&heat=&heater_type=&style=&capacity=&power=&budget=
    adds a ``score`` of how well the product fits those wanted values.
    """
    rt = get_runtime()
    record = rt.run(rt.service.require_product(handle))
    facets = infer_facets(record)
    out = {
        "handle": record.handle,
        "facets": facets.to_dict(),
        "is_sauna": is_likely_sauna_product(record),
    }
    wanted = {name: request.args[name] for name in FACET_FILTERS if request.args.get(name)}
    if wanted:
        out["wanted"] = wanted
        out["score"] = facet_match_score(facets, wanted)
    return jsonify(out)


@api.route("/search", methods=["GET"])
def search() -> JsonResponse:
    """Three-tier catalog search: ?q=phrase&limit=N."""
    q = (request.args.get("q") or "").strip()
    if not q:
        return jsonify({"error": "q is required"}), 400
    limit = request.args.get("limit", default=8, type=int)
    limit = max(1, min(limit, MAX_SEARCH_LIMIT))

    rt = get_runtime()
    hits = rt.run(rt.service.search.search(q, max_results=limit))
    return jsonify({"query": q, "results": [h.to_dict() for h in hits]})


@api.route("/resolve", methods=["GET"])
def resolve() -> JsonResponse:
    """Best single handle for free text, strict first then loose."""
    q = (request.args.get("q") or "").strip()
    if not q:
        return jsonify({"error": "q is required"}), 400

    rt = get_runtime()
    handle = rt.run(rt.service.search.resolve_handle(q))
    match = "strict"
    if handle is None:
        handle = rt.run(rt.service.search.resolve_handle_loose(q))
        match = "loose"
    if handle is None:
        return jsonify({"error": "Not found", "query": q}), 404
    return jsonify({"query": q, "handle": handle, "match": match})
