import pytest
import requests

from app_assignments.errors import GraphAPIError
from app_assignments.graph_client import GraphClient

GRAPH = "https://graph.test/v1.0"

USER_ID = "ae4ac864-4433-4ba6-96a6-20f8cffdadcb"
GROUP_ID = "11111111-2222-3333-4444-555555555555"
DELETED_ID = "99999999-0000-0000-0000-deadbeef0000"
CRM_SP_ID = "c0c0c0c0-1111-2222-3333-444444444444"
READER_ROLE_ID = "aaaaaaaa-0000-0000-0000-000000000001"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.headers = headers or {}
        self.text = str(self._payload)

    def json(self):
        return self._payload


class RecordingGet:
    """Stands in for requests.get, replaying queued responses in order."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, url, headers=None, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def fake_get(monkeypatch):
    def install(*responses):
        recorder = RecordingGet(responses)
        monkeypatch.setattr(requests, "get", recorder)
        return recorder

    return install


@pytest.fixture
def client():
    return GraphClient(token="test-token", base_url=GRAPH, timeout=5, max_retries=2)


def page(items, next_link=None):
    payload = {"value": items}
    if next_link:
        payload["@odata.nextLink"] = next_link
    return FakeResponse(200, payload)


class FakeGraphClient:
    """
    In-memory directory: objects[resource][id] -> record, collections[path] -> list.
    Ids listed in `failing` raise a 503 GraphAPIError on lookup.
    """

    def __init__(self, objects=None, collections=None, failing=()):
        self.objects = objects or {}
        self.collections = collections or {}
        self.failing = set(failing)
        self.gets = []
        self.lists = []

    def get_object(self, resource, object_id, select=None):
        self.gets.append((resource, object_id))
        if object_id in self.failing:
            raise GraphAPIError(503, "Service Unavailable", f"{resource}/{object_id}")
        return self.objects.get(resource, {}).get(object_id)

    def list_objects(self, resource, filter=None, select=None, page_size=None):
        self.lists.append((resource, filter))
        result = self.collections.get(resource, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


def contoso_directory():
    crm = {
        "id": CRM_SP_ID,
        "appId": "f0f0f0f0-aaaa-bbbb-cccc-dddddddddddd",
        "displayName": "Contoso CRM",
        "accountEnabled": True,
        "servicePrincipalType": "Application",
        "tags": ["WindowsAzureActiveDirectoryIntegratedApp"],
        "appRoles": [
            {
                "id": READER_ROLE_ID,
                "displayName": "CRM Reader",
                "value": "CRM.Read",
                "allowedMemberTypes": ["User"],
                "isEnabled": True,
            }
        ],
    }
    assignments = [
        {
            "id": "assignment-1",
            "principalId": USER_ID,
            "principalType": "User",
            "appRoleId": READER_ROLE_ID,
            "createdDateTime": "2024-03-01T10:00:00Z",
            "resourceId": CRM_SP_ID,
        },
        {
            "id": "assignment-2",
            "principalId": GROUP_ID,
            "principalType": "Group",
            "appRoleId": "00000000-0000-0000-0000-000000000000",
            "createdDateTime": "2024-03-02T10:00:00Z",
            "resourceId": CRM_SP_ID,
        },
        {
            "id": "assignment-3",
            "principalId": DELETED_ID,
            "principalType": "User",
            "appRoleId": READER_ROLE_ID,
            "createdDateTime": "2024-03-03T10:00:00Z",
            "resourceId": CRM_SP_ID,
        },
    ]
    return FakeGraphClient(
        objects={
            "servicePrincipals": {CRM_SP_ID: crm},
            "users": {
                USER_ID: {
                    "id": USER_ID,
                    "displayName": "Test User 1",
                    "mail": "test.user1@contoso.com",
                    "userPrincipalName": "test.user1@contoso.onmicrosoft.com",
                }
            },
            "groups": {GROUP_ID: {"id": GROUP_ID, "displayName": "Finance Team", "mail": None}},
        },
        collections={
            "servicePrincipals": [crm],
            f"servicePrincipals/{CRM_SP_ID}/appRoleAssignedTo": assignments,
        },
    )
