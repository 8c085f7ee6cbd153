# resolver.py
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

import requests

from .errors import GraphAPIError
from .graph_client import GraphClient
from .models import Principal, PrincipalKind


class Outcome(Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERRORED = "errored"


@dataclass(frozen=True)
class Lookup:
    outcome: Outcome
    principal: Optional[Principal] = None
    error: Optional[Exception] = None


@dataclass(frozen=True)
class Resolution:
    principal: Principal
    errors: int = 0

    @property
    def uncertain(self) -> bool:
        """Unknown only because a lookup failed, not because nothing exists."""
        return self.principal.kind is PrincipalKind.UNKNOWN and self.errors > 0


@dataclass
class ResolverStats:
    resolved: int = 0
    unknown: int = 0
    uncertain: int = 0
    errors: int = 0


Strategy = Callable[[str], Lookup]


class PrincipalResolver:
    """
    Resolve an assignment's principalId to a user, a group or a service principal.

    Responsibilities:
    - try each lookup in order (user, group, service principal), stop at the first hit
    - never raise; anything unresolvable comes back as PrincipalKind.UNKNOWN
    - count failed lookups apart from genuine misses
    - cache answers per id for the lifetime of the resolver (one run)
    """

    def __init__(self, client: GraphClient, strategies: Optional[List[Strategy]] = None):
        self.client = client
        self.strategies = strategies or [
            self.lookup_user,
            self.lookup_group,
            self.lookup_service_principal,
        ]
        self.stats = ResolverStats()

        # Cache: principalId -> Principal (errored Unknowns are not cached)
        self._cache: Dict[str, Principal] = {}

    # --------------------------------------------------------
    # Lookup strategies
    # --------------------------------------------------------
    def lookup_user(self, principal_id: str) -> Lookup:
        return self._lookup(
            "users",
            principal_id,
            "id,displayName,mail,userPrincipalName",
            lambda rec: Principal(
                id=principal_id,
                kind=PrincipalKind.USER,
                display_name=rec.get("displayName") or "",
                email=rec.get("mail") or rec.get("userPrincipalName") or "",
            ),
        )

    def lookup_group(self, principal_id: str) -> Lookup:
        return self._lookup(
            "groups",
            principal_id,
            "id,displayName,mail",
            lambda rec: Principal(
                id=principal_id,
                kind=PrincipalKind.GROUP,
                display_name=rec.get("displayName") or "",
                email=rec.get("mail") or "",
            ),
        )

    def lookup_service_principal(self, principal_id: str) -> Lookup:
        return self._lookup(
            "servicePrincipals",
            principal_id,
            "id,displayName,appId",
            lambda rec: Principal(
                id=principal_id,
                kind=PrincipalKind.SERVICE_PRINCIPAL,
                display_name=rec.get("displayName") or "",
            ),
        )

    def _lookup(
        self,
        resource: str,
        principal_id: str,
        select: str,
        build: Callable[[dict], Principal],
    ) -> Lookup:
        try:
            record = self.client.get_object(resource, principal_id, select=select)
        except (GraphAPIError, requests.RequestException) as e:
            logging.warning(
                f"[PrincipalResolver] {resource} lookup failed for {principal_id}: {e}"
            )
            return Lookup(Outcome.ERRORED, error=e)
        if not record:
            return Lookup(Outcome.NOT_FOUND)
        return Lookup(Outcome.FOUND, principal=build(record))

    # --------------------------------------------------------
    # Resolve
    # --------------------------------------------------------
    def resolve_detailed(self, principal_id: str) -> Resolution:
        if not principal_id:
            self.stats.unknown += 1
            return Resolution(Principal.unknown(""))
        if principal_id in self._cache:
            return Resolution(self._cache[principal_id])

        errors = 0
        principal = None
        for strategy in self.strategies:
            lookup = strategy(principal_id)
            if lookup.outcome is Outcome.FOUND:
                principal = lookup.principal
                break
            if lookup.outcome is Outcome.ERRORED:
                errors += 1

        self.stats.errors += errors
        if principal is None:
            principal = Principal.unknown(principal_id)
            self.stats.unknown += 1
            if errors:
                self.stats.uncertain += 1
        else:
            self.stats.resolved += 1

        if principal.kind is not PrincipalKind.UNKNOWN or not errors:
            self._cache[principal_id] = principal
        return Resolution(principal, errors)

    def resolve(self, principal_id: str) -> Principal:
        return self.resolve_detailed(principal_id).principal
