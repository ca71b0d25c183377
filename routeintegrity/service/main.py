import logging
import threading
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from .. import __version__, config
from ..bootstrap import build_registry
from ..commitment import Commitment
from ..errors import ErrorKind, InvalidDigestError, RegistryError
from ..hashing import hash_route_manifest, hash_rules_config, hash_solver_version, to_digest
from ..logging_config import audit_log, configure_logging, set_request_id
from ..registry import CommitmentRegistry
from .models import (
    CommitRequest,
    CommitmentResponse,
    ExistsResponse,
    HashRequest,
    VerifyRequest,
    VerifyResponse,
)
from .rate_limit import RateLimiter

logger = logging.getLogger(__name__)

STATUS_FOR_KIND = {
    ErrorKind.EMPTY_ROUTE_HASH: 400,
    ErrorKind.DUPLICATE_COMMITMENT: 409,
    ErrorKind.EXPIRED_TIMESTAMP: 400,
    ErrorKind.EXPIRY_TOO_FAR: 400,
    ErrorKind.NOT_FOUND: 404,
}


def commitment_response(c: Commitment) -> CommitmentResponse:
    return CommitmentResponse(**c.to_dict())


def create_app(
    registry: Optional[CommitmentRegistry] = None,
    commit_rpm: Optional[int] = None
) -> FastAPI:
    """
    Build the registry HTTP service.

    With no registry given, the production registry is built from
    configuration at startup.
    """
    app = FastAPI(title="Route Integrity Registry", version=__version__)
    app.state.registry = registry
    # Registry calls are serialized; the registry itself holds no lock
    app.state.lock = threading.RLock()
    commit_limiter = RateLimiter(commit_rpm if commit_rpm is not None else config.COMMIT_RPM)

    @app.on_event("startup")
    def _startup():
        level = "DEBUG" if config.is_debug() else config.LOG_LEVEL
        configure_logging(level, config.LOG_JSON, config.LOG_FILE or None)
        if app.state.registry is not None:
            return
        app.state.registry = build_registry()
        failed = [name for name, ok in config.validate_config().items() if not ok]
        if failed:
            if config.is_production():
                raise RuntimeError(f"Configuration checks failed: {failed}")
            logger.warning("Configuration checks failed: %s", failed)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = set_request_id(request.headers.get("X-Request-ID"))
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(InvalidDigestError)
    async def invalid_digest_handler(request: Request, exc: InvalidDigestError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(RegistryError)
    async def registry_error_handler(request: Request, exc: RegistryError):
        return JSONResponse(status_code=STATUS_FOR_KIND.get(exc.kind, 400), content=exc.to_dict())

    @app.get("/health")
    def health():
        reg = app.state.registry
        mode = reg.committer_mode if reg is not None else config.COMMITTER_MODE
        return {"status": "ok", "env": config.ENV, "committer_mode": mode}

    @app.post("/api/registry/commit", status_code=201, response_model=CommitmentResponse)
    def commit(
        req: CommitRequest,
        request: Request,
        x_caller_id: Optional[str] = Header(default=None)
    ):
        client_id = request.client.host if request.client else "anonymous"
        limit = commit_limiter.check(client_id)
        if not limit.allowed:
            audit_log.rate_limit_exceeded(client_id, "/api/registry/commit")
            raise HTTPException(429, "RATE_LIMIT", headers=limit.headers())

        with app.state.lock:
            c = app.state.registry.commit_route(
                req.route_hash,
                req.rules_hash,
                req.solver_version_hash,
                expiry=req.expiry,
                caller=x_caller_id,
            )
        return commitment_response(c)

    @app.get("/api/registry/commitment/{route_hash}", response_model=CommitmentResponse)
    def get_commitment(route_hash: str):
        key = to_digest(route_hash)
        with app.state.lock:
            c = app.state.registry.get_commit(key)
        return commitment_response(c)

    @app.get("/api/registry/exists/{route_hash}", response_model=ExistsResponse)
    def exists(route_hash: str):
        key = to_digest(route_hash)
        with app.state.lock:
            found = app.state.registry.has_commit(key)
        return ExistsResponse(exists=found)

    @app.post("/api/registry/verify", response_model=VerifyResponse, response_model_exclude_none=True)
    def verify(req: VerifyRequest):
        with app.state.lock:
            reg = app.state.registry
            verified = reg.verify_commit(req.route_hash, req.rules_hash, req.solver_hash)
            if not verified:
                return VerifyResponse(verified=False)
            c = reg.get_commit(req.route_hash)
        return VerifyResponse(verified=True, timestamp=c.timestamp, expiry=c.expiry, committer=c.committer)

    @app.post("/api/registry/hash")
    def compute_hashes(req: HashRequest):
        out = {}
        if req.route_manifest is not None:
            out["route_hash"] = hash_route_manifest(req.route_manifest).hex()
        if req.rules_config is not None:
            out["rules_hash"] = hash_rules_config(req.rules_config).hex()
        if req.solver_version is not None:
            out["solver_version_hash"] = hash_solver_version(req.solver_version).hex()
        if not out:
            raise HTTPException(400, "NOTHING_TO_HASH")
        return out

    return app


app = create_app()
