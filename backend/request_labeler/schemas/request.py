from __future__ import annotations

import hashlib
import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RequestContext(BaseModel):
    """Already-parsed view of one inbound request, supplied by the host."""

    entry_point: str
    request_path: str = ""
    script_file_path: str = ""
    query_params: dict[str, Any] = Field(default_factory=dict)
    body: dict[str, Any] = Field(default_factory=dict)


class RequestRecord(BaseModel):
    """Stored request metadata; field aliases are the archived JSON keys."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    entry_point: str = Field(alias="entryPoint")
    query_params: dict[str, Any] = Field(default_factory=dict, alias="GET")
    sanitized_body: dict[str, Any] = Field(default_factory=dict, alias="POST")
    request_path: str = Field(default="", alias="requestPath")
    script_file_path: str = Field(default="", alias="filePath")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str) -> RequestRecord:
        return cls.model_validate_json(raw)


def _encode_files(files: list[str]) -> str:
    return json.dumps(files, ensure_ascii=False, separators=(",", ":"))


class DependencySnapshot(BaseModel):
    """Ordered file list addressed by the MD5 of its own JSON encoding."""

    model_config = ConfigDict(frozen=True)

    digest: str
    files: list[str]

    @field_validator("files")
    @classmethod
    def validate_files(cls, v: list[str]) -> list[str]:
        if any(not path for path in v):
            raise ValueError("snapshot paths must be non-empty")
        return v

    @classmethod
    def from_files(cls, files: list[str]) -> DependencySnapshot:
        files = list(files)
        digest = hashlib.md5(_encode_files(files).encode("utf-8"), usedforsecurity=False).hexdigest()
        return cls(digest=digest, files=files)

    @classmethod
    def decode(cls, digest: str, raw: str) -> DependencySnapshot:
        return cls(digest=digest, files=json.loads(raw))

    def encoded_files(self) -> str:
        return _encode_files(self.files)
