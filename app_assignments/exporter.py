import logging
from typing import Dict, List, Optional, Tuple, Union

import requests

from .graph_client import GraphClient
from .models import (
    DEFAULT_ACCESS_NAME,
    ExportResult,
    PrincipalKind,
    RoleAssignment,
    ServicePrincipal,
)
from .errors import NotFound, RequestFailed
from .resolver import PrincipalResolver

SP_SELECT = (
    "id,appId,displayName,accountEnabled,servicePrincipalType,"
    "tags,homepage,replyUrls,appRoles"
)
ASSIGNMENT_SELECT = "id,principalId,principalType,appRoleId,createdDateTime,resourceId"

APP_COLUMNS = [
    "DisplayName",
    "AppId",
    "ObjectId",
    "AccountEnabled",
    "ServicePrincipalType",
    "Tags",
    "Homepage",
    "ReplyUrls",
]
ASSIGNMENT_COLUMNS = [
    "AppName",
    "AppId",
    "ServicePrincipalId",
    "PrincipalId",
    "PrincipalName",
    "PrincipalType",
    "PrincipalEmail",
    "AppRoleId",
    "AppRoleName",
    "CreatedDateTime",
]
ROLE_COLUMNS = [
    "AppName",
    "AppId",
    "ServicePrincipalId",
    "AppRoleId",
    "AppRoleName",
    "AppRoleValue",
    "AllowedMemberTypes",
    "Enabled",
]


def _odata_quote(value: str) -> str:
    return value.replace("'", "''")


class AssignmentExporter:
    def __init__(self, client: GraphClient, resolver: Optional[PrincipalResolver] = None):
        self.client = client
        self.resolver = resolver or PrincipalResolver(client)

    # --------------------------------------------------------
    # Service principals
    # --------------------------------------------------------
    def list_service_principals(self, name: Optional[str] = None) -> List[ServicePrincipal]:
        flt = None
        if name:
            flt = f"startswith(displayName,'{_odata_quote(name)}')"
        records = self.client.list_objects("servicePrincipals", filter=flt, select=SP_SELECT)
        logging.info("Fetched %d service principal(s)", len(records))
        return [ServicePrincipal.from_graph(r) for r in records]

    def find_service_principals(self, name: str) -> List[ServicePrincipal]:
        matches = self.list_service_principals(name)
        if not matches:
            raise NotFound(f"No service principal display name starts with {name!r}")
        return matches

    def get_service_principal(self, object_id: str) -> ServicePrincipal:
        try:
            record = self.client.get_object("servicePrincipals", object_id, select=SP_SELECT)
        except requests.RequestException as e:
            raise RequestFailed(f"Fetching service principal {object_id}", e) from e
        if not record:
            raise NotFound(f"Service principal {object_id} does not exist")
        return ServicePrincipal.from_graph(record)

    # --------------------------------------------------------
    # Export modes
    # --------------------------------------------------------
    def export_all(self) -> List[Dict[str, str]]:
        """One row per service principal; principals are not resolved."""
        return [
            {
                "DisplayName": sp.display_name,
                "AppId": sp.app_id,
                "ObjectId": sp.id,
                "AccountEnabled": str(sp.enabled),
                "ServicePrincipalType": sp.service_principal_type,
                "Tags": ";".join(sp.tags),
                "Homepage": sp.homepage,
                "ReplyUrls": ";".join(sp.reply_urls),
            }
            for sp in self.list_service_principals()
        ]

    def export_roles(self) -> List[Dict[str, str]]:
        rows = []
        for sp in self.list_service_principals():
            for role in sp.app_roles.values():
                rows.append(
                    {
                        "AppName": sp.display_name,
                        "AppId": sp.app_id,
                        "ServicePrincipalId": sp.id,
                        "AppRoleId": role.id,
                        "AppRoleName": role.display_name,
                        "AppRoleValue": role.value,
                        "AllowedMemberTypes": ";".join(role.allowed_member_types),
                        "Enabled": str(role.enabled),
                    }
                )
        return rows

    def export_assignments(self, target: Union[ServicePrincipal, str]) -> ExportResult:
        object_id = target.id if isinstance(target, ServicePrincipal) else target
        sp = self.get_service_principal(object_id)
        return self._assignment_rows(sp)

    def export_all_assignments(self) -> ExportResult:
        result = ExportResult()
        sps = self.list_service_principals()
        for i, sp in enumerate(sps, start=1):
            logging.info("[%d/%d] %s", i, len(sps), sp.display_name)
            result.merge(self._assignment_rows(sp))
        return result

    # --------------------------------------------------------
    # Helpers
    # --------------------------------------------------------
    def list_assignments(self, sp: ServicePrincipal) -> List[RoleAssignment]:
        records = self.client.list_objects(
            f"servicePrincipals/{sp.id}/appRoleAssignedTo", select=ASSIGNMENT_SELECT
        )
        return [RoleAssignment.from_graph(r) for r in records]

    @staticmethod
    def role_name(sp: ServicePrincipal, assignment: RoleAssignment) -> Tuple[str, bool]:
        """Friendly role name and whether the role id was accounted for."""
        if assignment.is_default_access:
            return DEFAULT_ACCESS_NAME, True
        role = sp.app_roles.get(assignment.app_role_id)
        if role is None:
            return assignment.app_role_id, False
        return role.display_name or role.value or assignment.app_role_id, True

    def _assignment_rows(self, sp: ServicePrincipal) -> ExportResult:
        result = ExportResult()
        for assignment in self.list_assignments(sp):
            resolution = self.resolver.resolve_detailed(assignment.principal_id)
            principal = resolution.principal
            role_name, matched = self.role_name(sp, assignment)

            result.principals_total += 1
            result.lookup_errors += resolution.errors
            if principal.kind is PrincipalKind.UNKNOWN:
                result.principals_unresolved += 1
            if not matched:
                logging.debug(
                    "Role %s not declared on %s", assignment.app_role_id, sp.display_name
                )
                result.unmatched_roles += 1

            result.rows.append(
                {
                    "AppName": sp.display_name,
                    "AppId": sp.app_id,
                    "ServicePrincipalId": sp.id,
                    "PrincipalId": assignment.principal_id,
                    "PrincipalName": principal.display_name,
                    "PrincipalType": principal.kind.value,
                    "PrincipalEmail": principal.email,
                    "AppRoleId": assignment.app_role_id,
                    "AppRoleName": role_name,
                    "CreatedDateTime": assignment.created,
                }
            )
        logging.info("%s: %d assignment(s)", sp.display_name, len(result.rows))
        return result
