import itertools
from unittest.mock import MagicMock

import pytest
import requests
from jose import jwt

import config
import schemas
from conftest import auth_headers
from routers import configuration, proposals

BASE_URL = "http://proposals.example.com/api"
SECRET = "shared-secret"


class FakeResponse:
    def __init__(self, status_code=200, body=None, reason="OK"):
        self.status_code = status_code
        self.ok = status_code < 400
        self.reason = reason
        self._body = body
        self.text = "" if body is None else str(body)
        self.headers = {"content-type": "application/json"} if body is not None else {}

    def json(self):
        return self._body


class FakeProposalAPI:
    """API des propositions en mémoire; le total est recalculé à chaque mutation de ligne."""

    def __init__(self, miscompute_total=False):
        self.proposals = {}
        self.calls = []
        self.item_snapshots = []
        self.miscompute_total = miscompute_total
        self._ids = itertools.count(1)

    def add(self, status="DRAFT", items=()):
        proposal_id = str(next(self._ids))
        self.proposals[proposal_id] = {
            "id": proposal_id,
            "proposalNo": f"PROP-2026-{int(proposal_id):04d}",
            "clientName": "Acme Corp",
            "status": status,
            "items": [],
            "totalAmount": 0,
        }
        for item in items:
            self._add_item(proposal_id, dict(item))
        return proposal_id

    def _recompute(self, proposal):
        total = sum(i["total"] for i in proposal["items"])
        proposal["totalAmount"] = total + 1 if self.miscompute_total else total

    def _add_item(self, proposal_id, item):
        proposal = self.proposals[proposal_id]
        item.update(id=f"item-{next(self._ids)}", proposalId=proposal_id,
                    total=item["quantity"] * item["unitPrice"])
        proposal["items"].append(item)
        self._recompute(proposal)

    def __call__(self, method, url, headers=None, json=None, timeout=None):
        path = url[len(BASE_URL):]
        self.calls.append((method, path, headers, json))
        response = self._route(method, path.strip("/").split("/"), json)
        for proposal in self.proposals.values():
            self.item_snapshots.append([i["description"] for i in proposal["items"]])
        return response

    def _route(self, method, parts, body):
        if parts == ["proposals"]:
            if method == "GET":
                return FakeResponse(body=list(self.proposals.values()))
            proposal_id = self.add()
            self.proposals[proposal_id].update({k: v for k, v in body.items() if k != "items"})
            for item in body.get("items", []):
                self._add_item(proposal_id, dict(item))
            return FakeResponse(201, self.proposals[proposal_id], "Created")
        if parts[:2] == ["proposals", "items"] and method == "DELETE":
            for proposal in self.proposals.values():
                proposal["items"] = [i for i in proposal["items"] if i["id"] != parts[2]]
                self._recompute(proposal)
            return FakeResponse(204, None, "No Content")
        proposal = self.proposals.get(parts[1])
        if proposal is None:
            return FakeResponse(404, {"error": "not found"}, "Not Found")
        if len(parts) == 3 and parts[2] == "items" and method == "POST":
            self._add_item(parts[1], dict(body))
            return FakeResponse(201, proposal, "Created")
        if method == "GET":
            return FakeResponse(body=proposal)
        if method == "PUT":
            proposal.update(body)
            return FakeResponse(body=proposal)
        if method == "DELETE":
            del self.proposals[parts[1]]
            return FakeResponse(204, None, "No Content")
        return FakeResponse(405, {"error": "method"}, "Method Not Allowed")


@pytest.fixture(autouse=True)
def proposal_api_config(monkeypatch, tmp_path):
    monkeypatch.setattr(configuration, "CONFIG_FILE", str(tmp_path / "config.json"))
    monkeypatch.setattr(config, "PROPOSAL_API_URL", BASE_URL)
    monkeypatch.setattr(config, "PROPOSAL_API_SECRET", SECRET)


@pytest.fixture
def api(monkeypatch):
    fake = FakeProposalAPI()
    monkeypatch.setattr(proposals.requests, "request", fake)
    return fake


OLD_ITEMS = [
    {"description": "old-web", "quantity": 1, "unitPrice": 3000},
    {"description": "old-seo", "quantity": 2, "unitPrice": 1000},
]
NEW_ITEMS = [
    {"description": "new-design", "quantity": 3, "unitPrice": 250.5},
    {"description": "new-hosting", "quantity": 12, "unitPrice": 20},
    {"description": "new-support", "quantity": 1, "unitPrice": 99.99},
]


def test_every_call_carries_a_freshly_signed_bearer_token(api):
    api.add()
    proposals.get_proposals()
    proposals.get_proposal_by_id("1")

    assert len(api.calls) == 2
    for _, _, headers, _ in api.calls:
        scheme, token = headers["Authorization"].split(" ")
        assert scheme == "Bearer"
        assert jwt.decode(token, SECRET, algorithms=["HS256"]) == {}
        assert headers["Content-Type"] == "application/json"


def test_missing_secret_fails_without_calling_the_api(api, monkeypatch):
    monkeypatch.setattr(config, "PROPOSAL_API_SECRET", None)
    result = proposals.get_proposals()
    assert result == {"success": False, "message": "Failed to generate auth token"}
    assert api.calls == []


def test_update_replaces_items_sequentially(api):
    proposal_id = api.add(items=OLD_ITEMS)
    old_ids = [i["id"] for i in api.proposals[proposal_id]["items"]]

    update = schemas.ProposalUpdate(clientName="Globex", items=NEW_ITEMS)
    result = proposals.update_proposal(proposal_id, update)

    assert result == {"success": True, "message": "Proposal updated successfully"}
    calls = [(method, path) for method, path, _, _ in api.calls]
    assert calls == [
        ("PUT", f"/proposals/{proposal_id}"),
        ("GET", f"/proposals/{proposal_id}"),
        ("DELETE", f"/proposals/items/{old_ids[0]}"),
        ("DELETE", f"/proposals/items/{old_ids[1]}"),
        ("POST", f"/proposals/{proposal_id}/items"),
        ("POST", f"/proposals/{proposal_id}/items"),
        ("POST", f"/proposals/{proposal_id}/items"),
        ("GET", f"/proposals/{proposal_id}"),
    ]
    assert api.calls[0][3] == {"clientName": "Globex"}
    assert [c[3] for c in api.calls[4:7]] == NEW_ITEMS


def test_total_matches_items_after_update(api):
    proposal_id = api.add(items=OLD_ITEMS)
    proposals.update_proposal(proposal_id, schemas.ProposalUpdate(items=NEW_ITEMS))

    stored = api.proposals[proposal_id]
    expected = sum(i["quantity"] * i["unitPrice"] for i in NEW_ITEMS)
    assert stored["totalAmount"] == pytest.approx(expected)
    assert proposals.proposal_total(stored["items"]) == pytest.approx(expected)


def test_item_sync_never_mixes_old_and_new_items(api):
    proposal_id = api.add(items=OLD_ITEMS)
    proposals.update_proposal(proposal_id, schemas.ProposalUpdate(items=NEW_ITEMS))

    for snapshot in api.item_snapshots:
        has_old = any(d.startswith("old-") for d in snapshot)
        has_new = any(d.startswith("new-") for d in snapshot)
        assert not (has_old and has_new)


def test_update_without_fields_skips_put(api):
    proposal_id = api.add(items=OLD_ITEMS)
    proposals.update_proposal(proposal_id, schemas.ProposalUpdate(items=[]))
    methods = [method for method, _, _, _ in api.calls]
    assert "PUT" not in methods
    assert api.proposals[proposal_id]["items"] == []
    assert api.proposals[proposal_id]["totalAmount"] == 0


def test_update_reports_inconsistent_total(monkeypatch):
    fake = FakeProposalAPI(miscompute_total=True)
    monkeypatch.setattr(proposals.requests, "request", fake)
    proposal_id = fake.add()

    result = proposals.update_proposal(proposal_id, schemas.ProposalUpdate(items=NEW_ITEMS))
    assert result == {"success": False, "message": "Proposal total is out of sync with its items"}


def test_external_error_is_returned_not_raised(api):
    result = proposals.get_proposal_by_id("404")
    assert result == {"success": False, "message": "External API Error: Not Found"}


def test_network_failure_gives_generic_message(monkeypatch):
    monkeypatch.setattr(
        proposals.requests, "request", MagicMock(side_effect=requests.exceptions.ConnectionError("refused"))
    )
    assert proposals.get_proposals() == {"success": False, "message": "Failed to fetch proposals"}
    assert proposals.delete_proposal("1") == {"success": False, "message": "Failed to delete proposal"}


def test_create_adds_creator_and_serializes_items(api):
    create = schemas.ProposalCreate(clientName="Initech", items=[{"description": "Audit", "quantity": 2, "unitPrice": 500}])
    result = proposals.create_proposal(create, created_by="Jane Manager")

    assert result["success"] is True
    assert result["message"] == "Proposal created successfully"
    method, path, _, body = api.calls[0]
    assert (method, path) == ("POST", "/proposals")
    assert body == {
        "clientName": "Initech",
        "items": [{"description": "Audit", "quantity": 2, "unitPrice": 500}],
        "createdByUser": "Jane Manager",
    }
    assert result["data"]["totalAmount"] == 1000


def test_search_filters_by_number_or_client(api):
    api.add()
    other = api.add()
    api.proposals[other]["clientName"] = "Globex Inc"

    by_client = proposals.get_proposals("globex")
    assert [p["id"] for p in by_client["data"]] == [other]

    by_number = proposals.get_proposals("prop-2026-0001")
    assert [p["id"] for p in by_number["data"]] == ["1"]


def test_list_is_cached_until_a_mutation(api):
    proposal_id = api.add()
    proposals.get_proposals()
    proposals.get_proposals()
    assert len(api.calls) == 1

    proposals.delete_proposal(proposal_id)
    assert proposals.get_proposals()["data"] == []


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        ("DRAFT", "SUBMITTED", True),
        ("SUBMITTED", "APPROVED", True),
        ("SUBMITTED", "REJECTED", True),
        ("DRAFT", "APPROVED", False),
        ("APPROVED", "DRAFT", False),
        ("REJECTED", "SUBMITTED", False),
    ],
)
def test_status_transitions(api, current, target, allowed):
    proposal_id = api.add(status=current)
    result = proposals.change_proposal_status(proposal_id, schemas.ProposalStatus(target))
    assert result["success"] is allowed
    assert api.proposals[proposal_id]["status"] == (target if allowed else current)


def test_ui_status_aliases():
    assert schemas.ProposalStatus.SENT is schemas.ProposalStatus.SUBMITTED
    assert schemas.ProposalStatus.ACCEPTED is schemas.ProposalStatus.APPROVED


def test_proposal_endpoints(client, factory, api):
    user = factory.user("executive", name="Eve Exec")
    headers = auth_headers(user)

    created = client.post("/proposals", json={"clientName": "Umbrella"}, headers=headers).json()
    assert created["success"] is True
    proposal_id = created["data"]["id"]
    assert api.proposals[proposal_id]["createdByUser"] == "Eve Exec"

    updated = client.put(
        f"/proposals/{proposal_id}",
        json={"items": [{"description": "Consulting", "quantity": 4, "unitPrice": 125}]},
        headers=headers,
    ).json()
    assert updated == {"success": True, "data": None, "message": "Proposal updated successfully"}
    assert api.proposals[proposal_id]["totalAmount"] == 500

    sent = client.post(f"/proposals/{proposal_id}/status", json={"status": "SUBMITTED"}, headers=headers).json()
    assert sent["success"] is True

    listed = client.get("/proposals", params={"search": "umbrella"}, headers=headers).json()
    assert [p["id"] for p in listed["data"]] == [proposal_id]

    deleted = client.delete(f"/proposals/{proposal_id}", headers=headers).json()
    assert deleted["success"] is True


def test_proposal_endpoints_require_session(client):
    assert client.get("/proposals").status_code == 401


def test_put_cannot_bypass_status_lifecycle(client, factory, api):
    proposal_id = api.add(status="APPROVED")
    headers = auth_headers(factory.user("executive"))

    result = client.put(f"/proposals/{proposal_id}", json={"status": "DRAFT"}, headers=headers).json()

    assert result["success"] is False
    assert result["message"] == "Cannot change status from APPROVED to DRAFT"
    assert api.proposals[proposal_id]["status"] == "APPROVED"
    assert "PUT" not in [method for method, _, _, _ in api.calls]


def test_put_accepts_allowed_status_with_fields(api):
    proposal_id = api.add(status="DRAFT")
    update = schemas.ProposalUpdate(clientName="Globex", status="SUBMITTED")

    assert proposals.update_proposal(proposal_id, update)["success"] is True
    assert api.proposals[proposal_id]["status"] == "SUBMITTED"
    assert api.proposals[proposal_id]["clientName"] == "Globex"
