from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from ..commitment import U64_MAX
from ..hashing import to_digest


class CommitRequest(BaseModel):
    route_hash: str
    rules_hash: str
    solver_version_hash: str
    expiry: int = Field(default=0, ge=0, le=U64_MAX)

    @field_validator("route_hash", "rules_hash", "solver_version_hash")
    @classmethod
    def check_digest(cls, v: str) -> str:
        # Normalized to bare lowercase hex; InvalidDigestError is a ValueError -> 422
        return to_digest(v).hex()


class VerifyRequest(BaseModel):
    route_hash: str
    rules_hash: str
    solver_hash: str

    @field_validator("route_hash", "rules_hash", "solver_hash")
    @classmethod
    def check_digest(cls, v: str) -> str:
        return to_digest(v).hex()


class HashRequest(BaseModel):
    route_manifest: Optional[Dict[str, Any]] = None
    rules_config: Optional[Dict[str, Any]] = None
    solver_version: Optional[str] = None


class CommitmentResponse(BaseModel):
    route_hash: str
    rules_hash: str
    solver_version_hash: str
    committer: str
    timestamp: int
    expiry: int


class VerifyResponse(BaseModel):
    verified: bool
    timestamp: Optional[int] = None
    expiry: Optional[int] = None
    committer: Optional[str] = None


class ExistsResponse(BaseModel):
    exists: bool
