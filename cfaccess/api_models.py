from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class IpRule(BaseModel):
    ip: str | None = Field("", description="Address with prefix, e.g. 203.0.113.7/32")


class IncludeRule(BaseModel):
    # Access Group rules are tagged unions; only the "ip" variant is read.
    model_config = ConfigDict(extra="allow")

    ip: IpRule | None = None


class AccessGroup(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    name: str = ""
    uid: str = ""
    include: list[IncludeRule] = Field(default_factory=list)
    require: list[Any] = Field(default_factory=list)
    exclude: list[Any] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    def current_ip(self) -> str:
        """Address of the first include rule, or "" if there is none."""
        if not self.include or self.include[0].ip is None:
            return ""
        return self.include[0].ip.ip or ""


class AccessGroupResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    result: AccessGroup = Field(default_factory=AccessGroup)
    success: bool = True
    errors: list[Any] = Field(default_factory=list)
    messages: list[Any] = Field(default_factory=list)


class UpdateGroupRequest(BaseModel):
    include: list[IncludeRule]

    @classmethod
    def single_ip(cls, address: str) -> "UpdateGroupRequest":
        return cls(include=[IncludeRule(ip=IpRule(ip=f"{address}/32"))])


class ReadyResponse(BaseModel):
    status: str = Field("OK")
    timestamp: str = Field(..., description="RFC3339 time of the request")
    uptime: str = Field(..., description="Process uptime, e.g. 1h2m3.5s")
