"""Route tests for the hierarchy API."""

import pytest
from flask import Flask

from orgtree.routes.hierarchy import hierarchy_bp

CEO, DIRECTOR, ENGINEER = 1, 2, 3


@pytest.fixture
def app(service):
    """Create a test Flask application with the hierarchy blueprint."""
    app = Flask(__name__)
    app.register_blueprint(hierarchy_bp)
    app.config["TESTING"] = True
    app.extensions["hierarchy_service"] = service
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def _names(items):
    return [item["name"] for item in items]


class TestListMembers:
    """GET /api/members."""

    def test_default_page(self, client, org):
        response = client.get("/api/members")

        assert response.status_code == 200
        data = response.get_json()
        assert (data["page"], data["limit"], data["total"]) == (1, 20, 7)
        assert _names(data["items"])[:2] == ["Ada", "Bea"]

    def test_search_and_filters(self, client, org):
        response = client.get(f"/api/members?q=A&designation={ENGINEER}&status=active")

        assert _names(response.get_json()["items"]) == ["Dan", "cal"]

    def test_limit_capped(self, client, org):
        data = client.get("/api/members?limit=500&page=0").get_json()

        assert data["limit"] == 100
        assert data["page"] == 1

    def test_non_integer_page(self, client, org):
        response = client.get("/api/members?page=two")

        assert response.status_code == 400
        assert response.get_json()["details"] == ["page: must be an integer"]

    def test_unknown_status(self, client, org):
        assert client.get("/api/members?status=fired").status_code == 400


class TestRoots:
    """GET /api/members/roots."""

    def test_plain_roots(self, client, org):
        response = client.get("/api/members/roots")

        assert response.status_code == 200
        assert _names(response.get_json()) == ["Ada", "Gus"]

    def test_roots_with_my_reports(self, client, org):
        response = client.get(f"/api/members/roots?includeMyReports=1&viewer={org['ada'].id}")

        data = response.get_json()
        assert _names(data["roots"]) == ["Ada", "Gus"]
        assert _names(data["myReports"]) == ["Bea", "Fay"]

    def test_my_reports_without_viewer(self, client, org):
        data = client.get("/api/members/roots?includeMyReports=true").get_json()

        assert data["myReports"] == []

    def test_full_forest(self, client, org):
        response = client.get("/api/members/roots?full=1&depth=1")

        data = response.get_json()
        assert response.status_code == 200
        assert _names(data["tree"]) == ["Ada", "Gus", "Bea", "Fay"]
        assert data["maxDepth"] == 1
        assert "myReports" not in data

    def test_full_forest_with_my_reports(self, client, org):
        data = client.get(
            f"/api/members/roots?full=1&includeMyReports=1&viewer={org['bea'].id}"
        ).get_json()

        assert _names(data["myReports"]) == ["cal", "Dan"]
        assert len(data["tree"]) == 7

    def test_invalid_depth(self, client, org):
        response = client.get("/api/members/roots?full=1&depth=-3")

        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_depth_cap"

    def test_service_unavailable(self, app, client):
        app.extensions.pop("hierarchy_service")

        assert client.get("/api/members/roots").status_code == 503


class TestSubtree:
    """GET /api/members/<id>/subtree."""

    def test_subtree(self, client, org):
        response = client.get(f"/api/members/{org['bea'].id}/subtree")

        assert response.status_code == 200
        assert _names(response.get_json()) == ["Bea", "cal", "Dan", "Eve"]

    def test_subtree_with_depth(self, client, org):
        response = client.get(f"/api/members/{org['bea'].id}/subtree?depth=1")

        assert _names(response.get_json()) == ["Bea", "cal", "Dan"]

    def test_unknown_root(self, client, org):
        response = client.get("/api/members/999/subtree")

        assert response.status_code == 404
        assert response.get_json()["code"] == "not_found"

    def test_non_integer_depth(self, client, org):
        response = client.get(f"/api/members/{org['bea'].id}/subtree?depth=two")

        assert response.status_code == 400


class TestMemberReads:

    def test_get_member(self, client, org):
        data = client.get(f"/api/members/{org['eve'].id}").get_json()

        assert data["ancestors"] == [org["ada"].id, org["bea"].id, org["cal"].id]
        assert data["depth"] == 3

    def test_get_soft_deleted_member(self, client, service, org):
        service.soft_delete(org["gus"].id)

        data = client.get(f"/api/members/{org['gus'].id}").get_json()

        assert data["active"] is False

    def test_direct_reports(self, client, org):
        response = client.get(f"/api/members/{org['bea'].id}/reports")

        assert _names(response.get_json()) == ["cal", "Dan"]


class TestCreateMember:
    """POST /api/members."""

    def test_create_root(self, client):
        response = client.post("/api/members", json={"name": "Rex"})

        assert response.status_code == 201
        data = response.get_json()
        assert data["ancestors"] == []
        assert data["depth"] == 0

    def test_create_child(self, client, org):
        response = client.post(
            "/api/members",
            json={"name": "Kim", "managers": [org["fay"].id], "designation_id": ENGINEER},
        )

        data = response.get_json()
        assert response.status_code == 201
        assert data["ancestors"] == [org["ada"].id, org["fay"].id]
        assert data["depth"] == 2

    def test_missing_name(self, client):
        response = client.post("/api/members", json={"managers": []})

        assert response.status_code == 400
        assert response.get_json()["error"] == "Validation error"

    def test_bad_managers(self, client):
        response = client.post("/api/members", json={"name": "Kim", "managers": "1"})

        assert response.status_code == 400

    def test_bad_status(self, client):
        response = client.post("/api/members", json={"name": "Kim", "status": "fired"})

        assert response.status_code == 400

    def test_unknown_manager(self, client):
        response = client.post("/api/members", json={"name": "Kim", "managers": [404]})

        assert response.status_code == 422
        assert response.get_json()["code"] == "primary_manager_not_found"

    def test_non_object_body(self, client):
        response = client.post("/api/members", json=["Zed"])

        assert response.status_code == 400
        assert response.get_json()["details"] == ["body: must be a JSON object"]

    def test_non_string_emp_id(self, client):
        response = client.post("/api/members", json={"name": "Kim", "emp_id": 42})

        assert response.status_code == 400
        assert "emp_id" in response.get_json()["details"][0]

    def test_emp_id_stored(self, client):
        response = client.post("/api/members", json={"name": "Kim", "emp_id": "E-9"})

        assert response.get_json()["emp_id"] == "E-9"

    def test_ancestors_not_settable(self, client):
        response = client.post("/api/members", json={"name": "Kim", "ancestors": [1]})

        assert response.status_code == 400
        assert response.get_json()["code"] == "derived_field_write"


class TestUpdateMember:
    """PATCH /api/members/<id>."""

    def test_move(self, client, org):
        response = client.patch(
            f"/api/members/{org['cal'].id}", json={"managers": [org["fay"].id]}
        )

        assert response.status_code == 200
        assert response.get_json()["ancestors"] == [org["ada"].id, org["fay"].id]

    def test_cycle_rejected(self, client, store, org):
        response = client.patch(
            f"/api/members/{org['bea'].id}", json={"managers": [org["eve"].id]}
        )

        assert response.status_code == 409
        data = response.get_json()
        assert data["code"] == "cyclic_reporting_line"
        assert str(org["bea"].id) in data["error"]
        assert store.find_by_id(org["bea"].id).ancestors == (org["ada"].id,)

    def test_version_conflict(self, client, org):
        url = f"/api/members/{org['dan'].id}"
        assert client.patch(url, json={"name": "Dan A", "version": 1}).status_code == 200

        response = client.patch(url, json={"name": "Dan B", "version": 1})

        assert response.status_code == 409
        assert response.get_json()["code"] == "version_conflict"

    def test_depth_not_settable(self, client, org):
        response = client.patch(f"/api/members/{org['dan'].id}", json={"depth": 0})

        assert response.status_code == 400
        assert response.get_json()["code"] == "derived_field_write"

    def test_non_object_body(self, client, org):
        response = client.patch(f"/api/members/{org['dan'].id}", json=["x"])

        assert response.status_code == 400
        assert response.get_json()["error"] == "Validation error"

    def test_empty_body(self, client, org):
        response = client.patch(f"/api/members/{org['dan'].id}", json={})

        assert response.status_code == 400

    def test_unknown_member(self, client):
        response = client.patch("/api/members/999", json={"name": "Nobody"})

        assert response.status_code == 404


class TestDeletes:

    def test_soft_delete(self, client, org):
        response = client.delete(f"/api/members/{org['gus'].id}")

        assert response.get_json() == {"ok": True}
        assert _names(client.get("/api/members/roots").get_json()) == ["Ada"]

    def test_hard_delete(self, client, org):
        response = client.delete(f"/api/members/{org['cal'].id}/hard")

        assert response.status_code == 200
        assert response.get_json() == {"ok": True, "danglingDescendants": 1}

    def test_delete_unknown(self, client):
        assert client.delete("/api/members/5").status_code == 404


class TestReorderDesignations:
    """PATCH /api/designations/reorder."""

    def test_reorder(self, client, org):
        response = client.patch(
            "/api/designations/reorder",
            json={"items": [{"id": CEO, "priority": 50}, {"id": 99, "priority": 1}]},
        )

        assert response.status_code == 200
        assert response.get_json() == {"ok": True, "updated": 1}

    def test_empty_items(self, client):
        response = client.patch("/api/designations/reorder", json={"items": []})

        assert response.status_code == 400

    def test_non_object_body(self, client):
        response = client.patch("/api/designations/reorder", json=[{"id": CEO, "priority": 1}])

        assert response.status_code == 400

    def test_invalid_designation_id(self, client, priorities):
        response = client.patch(
            "/api/designations/reorder",
            json={"items": [{"id": CEO, "priority": 5}, {"id": "abc", "priority": 1}]},
        )

        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_designation_id"
        assert priorities.priorities[CEO] == 1

    def test_invalid_priority(self, client):
        response = client.patch(
            "/api/designations/reorder", json={"items": [{"id": CEO, "priority": 0}]}
        )

        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_priority"


class TestListDesignations:
    """GET /api/designations."""

    def test_ordered_by_priority(self, client, priorities):
        priorities.priorities[CEO] = 9

        response = client.get("/api/designations")

        assert response.status_code == 200
        assert response.get_json() == [
            {"id": DIRECTOR, "priority": 2, "name": "Director"},
            {"id": ENGINEER, "priority": 3, "name": "Engineer"},
            {"id": CEO, "priority": 9, "name": "CEO"},
        ]
