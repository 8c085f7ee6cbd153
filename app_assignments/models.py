from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_ACCESS_ROLE_ID = "00000000-0000-0000-0000-000000000000"
DEFAULT_ACCESS_NAME = "Default Access"


class PrincipalKind(str, Enum):
    USER = "User"
    GROUP = "Group"
    SERVICE_PRINCIPAL = "ServicePrincipal"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class AppRole:
    id: str
    display_name: str
    value: str
    description: str = ""
    allowed_member_types: Tuple[str, ...] = ()
    enabled: bool = True

    @classmethod
    def from_graph(cls, record: Dict[str, Any]) -> "AppRole":
        return cls(
            id=record.get("id", ""),
            display_name=record.get("displayName") or "",
            value=record.get("value") or "",
            description=record.get("description") or "",
            allowed_member_types=tuple(record.get("allowedMemberTypes") or ()),
            enabled=bool(record.get("isEnabled", True)),
        )


@dataclass(frozen=True)
class ServicePrincipal:
    id: str
    app_id: str
    display_name: str
    enabled: bool = True
    service_principal_type: str = ""
    tags: Tuple[str, ...] = ()
    homepage: str = ""
    reply_urls: Tuple[str, ...] = ()
    app_roles: Dict[str, AppRole] = field(default_factory=dict, compare=False)

    @classmethod
    def from_graph(cls, record: Dict[str, Any]) -> "ServicePrincipal":
        roles = [AppRole.from_graph(r) for r in record.get("appRoles") or []]
        return cls(
            id=record.get("id", ""),
            app_id=record.get("appId") or "",
            display_name=record.get("displayName") or "",
            enabled=bool(record.get("accountEnabled", True)),
            service_principal_type=record.get("servicePrincipalType") or "",
            tags=tuple(record.get("tags") or ()),
            homepage=record.get("homepage") or "",
            reply_urls=tuple(record.get("replyUrls") or ()),
            app_roles={r.id: r for r in roles if r.id},
        )

    def __str__(self) -> str:
        state = "" if self.enabled else " [disabled]"
        return f"{self.display_name} ({self.app_id}){state}"


@dataclass(frozen=True)
class RoleAssignment:
    id: str
    principal_id: str
    app_role_id: str
    created: str = ""
    resource_id: str = ""
    principal_type: str = ""

    @classmethod
    def from_graph(cls, record: Dict[str, Any]) -> "RoleAssignment":
        return cls(
            id=record.get("id", ""),
            principal_id=record.get("principalId") or "",
            app_role_id=record.get("appRoleId") or DEFAULT_ACCESS_ROLE_ID,
            created=record.get("createdDateTime") or "",
            resource_id=record.get("resourceId") or "",
            principal_type=record.get("principalType") or "",
        )

    @property
    def is_default_access(self) -> bool:
        return self.app_role_id == DEFAULT_ACCESS_ROLE_ID


@dataclass(frozen=True)
class Principal:
    id: str
    kind: PrincipalKind
    display_name: str = ""
    email: str = ""

    @classmethod
    def unknown(cls, principal_id: str) -> "Principal":
        return cls(id=principal_id, kind=PrincipalKind.UNKNOWN)


@dataclass
class ExportResult:
    rows: List[Dict[str, str]] = field(default_factory=list)
    principals_total: int = 0
    principals_unresolved: int = 0
    lookup_errors: int = 0
    unmatched_roles: int = 0

    def summary(self) -> str:
        parts = [
            f"{self.principals_unresolved} of {self.principals_total} principals could not be resolved"
        ]
        if self.lookup_errors:
            parts.append(f"{self.lookup_errors} lookup(s) failed")
        if self.unmatched_roles:
            parts.append(f"{self.unmatched_roles} role id(s) had no matching app role")
        return "; ".join(parts)

    def merge(self, other: "ExportResult") -> None:
        self.rows.extend(other.rows)
        self.principals_total += other.principals_total
        self.principals_unresolved += other.principals_unresolved
        self.lookup_errors += other.lookup_errors
        self.unmatched_roles += other.unmatched_roles
