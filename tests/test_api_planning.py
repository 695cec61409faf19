"""
SWOT Planning Workshop Platform
Tests — Planning API.

Covers:
    - Plan / group CRUD + required fields + deadline parsing
    - Group SWOT save with certainty marks and fill stamp
    - Deadline enforcement on group-level writes
    - Grids: read, cell write, whole-matrix save, reconciliation on item change
    - Impact analysis endpoint
    - Consolidation, final matrix override and cap
    - Group / final classification, seeding, responses
    - Fill progress
"""


def _group_ids(plan):
    return [g["id"] for g in plan["groups"]]


def _fill_finance(client, gid):
    res = client.put(f"/api/v1/groups/{gid}/swot", json={
        "strengths": ["Skilled team", "Brand"],
        "weaknesses": "Debt",
        "opportunities": ["Novo mercado"],
        "threats": "Rates\nRival",
        "certainty": {
            "strengths": {"0": "C", "1": "C"},
            "weaknesses": {"0": "I"},
            "opportunities": {"0": "C"},
            "threats": {"0": "C", "1": "I"},
        },
        "mark_filled": True,
    })
    assert res.status_code == 200
    res = client.put(f"/api/v1/groups/{gid}/classification", json={
        "opportunities": [{"item": "novo mercado", "classification": "explore"}],
        "threats": [{"item": "Rates", "classification": "mitigate", "treatment": "Hedge"}],
        "mark_filled": True,
    })
    assert res.status_code == 200
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# PLANS & GROUPS
# ═════════════════════════════════════════════════════════════════════════════

class TestPlanCRUD:
    def test_create_plan_with_groups(self, plan):
        assert plan["title"] == "Strategic Plan 2027"
        assert [g["name"] for g in plan["groups"]] == ["Finance", "Operations"]
        assert plan["editable"] is True
        assert plan["status"] == "active"

    def test_create_plan_missing_title(self, client):
        res = client.post("/api/v1/plans", json={})
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_REQUIRED"

    def test_create_plan_group_without_name(self, client):
        res = client.post("/api/v1/plans", json={
            "title": "P", "groups": ["Finance", {"members": "x"}, "  "],
        })
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_REQUIRED"
        assert body["details"]["fields"] == ["groups[1].name", "groups[2].name"]

    def test_create_plan_group_of_wrong_type(self, client):
        res = client.post("/api/v1/plans", json={"title": "P", "groups": [5]})
        assert res.status_code == 422
        assert res.get_json()["details"]["field"] == "groups[0]"

    def test_create_plan_groups_not_a_list(self, client):
        res = client.post("/api/v1/plans", json={"title": "P", "groups": 5})
        assert res.status_code == 422

    def test_create_plan_bad_deadline(self, client):
        res = client.post("/api/v1/plans", json={"title": "X", "fill_deadline": "soon"})
        assert res.status_code == 422
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    def test_create_plan_bad_status(self, client):
        res = client.post("/api/v1/plans", json={"title": "X", "status": "archived"})
        assert res.status_code == 422

    def test_get_plan_not_found(self, client):
        res = client.get("/api/v1/plans/99999")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_update_plan(self, client, plan):
        res = client.put(f"/api/v1/plans/{plan['id']}", json={
            "title": "Renamed", "status": "completed", "fill_deadline": "31.12.2999",
        })
        assert res.status_code == 200
        data = res.get_json()
        assert data["title"] == "Renamed"
        assert data["status"] == "completed"
        assert data["fill_deadline"].startswith("2999-12-31")
        assert data["editable"] is True

    def test_create_group(self, client, plan):
        res = client.post(f"/api/v1/plans/{plan['id']}/groups", json={
            "name": "Sales", "members": "Ana, Bruno",
        })
        assert res.status_code == 201
        assert res.get_json()["members"] == "Ana, Bruno"
        detail = client.get(f"/api/v1/plans/{plan['id']}").get_json()
        assert len(detail["groups"]) == 3

    def test_create_group_missing_name(self, client, plan):
        res = client.post(f"/api/v1/plans/{plan['id']}/groups", json={})
        assert res.status_code == 400

    def test_unknown_route_is_json(self, client):
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


class TestGroupSwot:
    def test_save_swot(self, client, plan):
        gid = _group_ids(plan)[0]
        res = client.put(f"/api/v1/groups/{gid}/swot", json={
            "strengths": ["A", "", "  ", "B"],
            "certainty": {"strengths": {"0": "C", "1": "I", "5": "C"}},
            "mark_filled": True,
        })
        assert res.status_code == 200
        data = res.get_json()
        assert data["swot"]["strengths"] == "A\nB"
        assert data["certainty"]["strengths"] == {"0": "C", "1": "I"}
        assert data["swot_filled_at"] is not None

    def test_save_swot_rejects_non_string_items(self, client, plan):
        gid = _group_ids(plan)[0]
        res = client.put(f"/api/v1/groups/{gid}/swot", json={"threats": [1, 2]})
        assert res.status_code == 422

    def test_unknown_quadrant_in_certainty(self, client, plan):
        gid = _group_ids(plan)[0]
        res = client.put(f"/api/v1/groups/{gid}/swot", json={"certainty": {"risks": {}}})
        assert res.status_code == 422

    def test_get_group(self, client, plan):
        gid = _group_ids(plan)[1]
        res = client.get(f"/api/v1/groups/{gid}")
        assert res.status_code == 200
        assert res.get_json()["name"] == "Operations"

    def test_group_not_found(self, client):
        assert client.put("/api/v1/groups/99999/swot", json={}).status_code == 404


class TestDeadline:
    def _closed_plan(self, client):
        res = client.post("/api/v1/plans", json={
            "title": "Closed", "fill_deadline": "2020-01-01T00:00:00Z", "groups": ["G"],
        })
        assert res.status_code == 201
        data = res.get_json()
        assert data["editable"] is False
        return data

    def test_swot_write_after_deadline(self, client):
        plan = self._closed_plan(client)
        res = client.put(f"/api/v1/groups/{plan['groups'][0]['id']}/swot", json={"strengths": "X"})
        assert res.status_code == 409
        body = res.get_json()
        assert body["code"] == "ERR_EDITING_CLOSED"
        assert body["details"]["plan_id"] == plan["id"]
        group = client.get(f"/api/v1/groups/{plan['groups'][0]['id']}").get_json()
        assert group["swot"]["strengths"] == ""

    def test_cell_and_classification_write_after_deadline(self, client):
        plan = self._closed_plan(client)
        gid = plan["groups"][0]["id"]
        res = client.patch(f"/api/v1/groups/{gid}/grids/defense/cells", json={"row": 0, "col": 0, "value": 10})
        assert res.status_code == 409
        res = client.put(f"/api/v1/groups/{gid}/classification", json={"mark_filled": True})
        assert res.status_code == 409

    def test_plan_level_writes_still_allowed(self, client):
        plan = self._closed_plan(client)
        res = client.post(f"/api/v1/plans/{plan['id']}/consolidate")
        assert res.status_code == 200


# ═════════════════════════════════════════════════════════════════════════════
# GRIDS & ANALYSIS
# ═════════════════════════════════════════════════════════════════════════════

class TestGrids:
    def test_grids_follow_items(self, client, plan):
        gid = _group_ids(plan)[0]
        _fill_finance(client, gid)
        grids = client.get(f"/api/v1/groups/{gid}/grids").get_json()["grids"]
        assert grids["defense"]["rows"] == ["Rates", "Rival"]
        assert grids["defense"]["cols"] == ["Skilled team", "Brand"]
        assert grids["defense"]["cells"] == [[0, 0], [0, 0]]

    def test_set_cell_quantizes(self, client, plan):
        gid = _group_ids(plan)[0]
        _fill_finance(client, gid)
        res = client.patch(f"/api/v1/groups/{gid}/grids/defense/cells", json={"row": 0, "col": 1, "value": 37})
        assert res.status_code == 200
        assert res.get_json()["value"] == 40
        again = client.patch(f"/api/v1/groups/{gid}/grids/defense/cells", json={"row": 0, "col": 1, "value": 37})
        assert again.get_json()["grid"]["cells"] == res.get_json()["grid"]["cells"]

    def test_set_cell_accepts_comma_decimal(self, client, plan):
        gid = _group_ids(plan)[0]
        _fill_finance(client, gid)
        res = client.patch(f"/api/v1/groups/{gid}/grids/problem/cells", json={"row": 1, "col": 0, "value": "14,9"})
        assert res.get_json()["value"] == 10

    def test_set_cell_huge_integer_clamps(self, client, plan):
        gid = _group_ids(plan)[0]
        _fill_finance(client, gid)
        res = client.patch(f"/api/v1/groups/{gid}/grids/problem/cells", json={"row": 0, "col": 0, "value": 10**400})
        assert res.status_code == 200
        assert res.get_json()["value"] == 50

    def test_set_cell_out_of_range(self, client, plan):
        gid = _group_ids(plan)[0]
        _fill_finance(client, gid)
        res = client.patch(f"/api/v1/groups/{gid}/grids/defense/cells", json={"row": 9, "col": 0, "value": 10})
        assert res.status_code == 422
        assert res.get_json()["details"]["row"] == 9

    def test_set_cell_missing_value(self, client, plan):
        gid = _group_ids(plan)[0]
        res = client.patch(f"/api/v1/groups/{gid}/grids/defense/cells", json={"row": 0, "col": 0})
        assert res.status_code == 400

    def test_unknown_grid_kind(self, client, plan):
        gid = _group_ids(plan)[0]
        _fill_finance(client, gid)
        res = client.patch(f"/api/v1/groups/{gid}/grids/attack/cells", json={"row": 0, "col": 0, "value": 10})
        assert res.status_code == 422

    def test_adding_threat_keeps_existing_cells(self, client, plan):
        gid = _group_ids(plan)[0]
        _fill_finance(client, gid)
        client.patch(f"/api/v1/groups/{gid}/grids/defense/cells", json={"row": 1, "col": 0, "value": 50})
        client.put(f"/api/v1/groups/{gid}/swot", json={"threats": "Rates\nRival\nTax"})
        defense = client.get(f"/api/v1/groups/{gid}/grids").get_json()["grids"]["defense"]
        assert defense["cells"] == [[0, 0], [50, 0], [0, 0]]

    def test_save_whole_grid(self, client, plan):
        gid = _group_ids(plan)[0]
        _fill_finance(client, gid)
        res = client.put(f"/api/v1/groups/{gid}/grids", json={
            "problem": [[12], [49]],
            "defense": [[20, 30]],
        })
        assert res.status_code == 200
        grids = res.get_json()["grids"]
        assert grids["problem"]["cells"] == [[10], [50]]
        assert grids["defense"]["cells"] == [[20, 30], [0, 0]]

    def test_save_grid_rejects_nan(self, client, plan):
        gid = _group_ids(plan)[0]
        _fill_finance(client, gid)
        res = client.put(f"/api/v1/groups/{gid}/grids", json={"problem": [["x"], [10]]})
        assert res.status_code == 422


class TestAnalysis:
    def test_threat_analysis(self, client, plan):
        gid = _group_ids(plan)[0]
        _fill_finance(client, gid)
        client.put(f"/api/v1/groups/{gid}/grids", json={
            "problem": [[30], [10]],
            "defense": [[20, 0], [10, 10]],
        })
        res = client.get(f"/api/v1/groups/{gid}/analysis/threats?item=0")
        assert res.status_code == 200
        data = res.get_json()
        assert data["grand_total"] == 80
        assert [i["percentage"] for i in data["items"]] == [62.5, 37.5]
        assert [i["label_percentage"] for i in data["items"]] == [63, 38]
        assert data["breakdown"]["strengths"] == [
            {"item": "Skilled team", "score": 20}, {"item": "Brand", "score": 0},
        ]

    def test_analysis_of_strengths_rejected(self, client, plan):
        gid = _group_ids(plan)[0]
        res = client.get(f"/api/v1/groups/{gid}/analysis/strengths")
        assert res.status_code == 422

    def test_plan_level_analysis_empty(self, client, plan):
        res = client.get(f"/api/v1/plans/{plan['id']}/analysis/opportunities")
        assert res.status_code == 200
        assert res.get_json()["items"] == []


# ═════════════════════════════════════════════════════════════════════════════
# CONSOLIDATION & FINAL MATRIX
# ═════════════════════════════════════════════════════════════════════════════

class TestConsolidation:
    def test_consolidate_certain_items_of_filled_groups(self, client, plan):
        finance, operations = _group_ids(plan)
        _fill_finance(client, finance)
        client.put(f"/api/v1/groups/{operations}/swot", json={
            "threats": "Strike", "certainty": {"threats": {"0": "C"}}, "mark_filled": True,
        })
        res = client.post(f"/api/v1/plans/{plan['id']}/consolidate")
        assert res.status_code == 200
        data = res.get_json()
        assert data["group_count"] == 2
        assert data["filled_count"] == 1
        assert data["complete"] is False
        assert [i["text"] for i in data["quadrants"]["threats"]] == ["Rates"]
        assert data["quadrants"]["threats"][0]["sources"] == ["Finance"]

        final = client.get(f"/api/v1/plans/{plan['id']}/final-matrix").get_json()
        assert final["quadrants"]["strengths"] == ["Skilled team", "Brand"]
        assert final["quadrants"]["weaknesses"] == []
        assert final["cap"] == 5

    def test_final_matrix_override_cap(self, client, plan):
        res = client.put(f"/api/v1/plans/{plan['id']}/final-matrix", json={
            "opportunities": ["a", "b", "c", "d", "e", "f"],
        })
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CAPACITY_EXCEEDED"
        final = client.get(f"/api/v1/plans/{plan['id']}/final-matrix").get_json()
        assert final["quadrants"]["opportunities"] == []

    def test_final_matrix_override_and_observations(self, client, plan):
        res = client.put(f"/api/v1/plans/{plan['id']}/final-matrix", json={
            "threats": "Rates\n\nTax", "observations": "Reviewed by board",
        })
        assert res.status_code == 200
        data = res.get_json()
        assert data["quadrants"]["threats"] == ["Rates", "Tax"]
        assert data["observations"] == "Reviewed by board"

    def test_insert_item_until_cap(self, client, plan):
        for n in range(5):
            res = client.post(f"/api/v1/plans/{plan['id']}/final-matrix/threats/items", json={"text": f"T{n}"})
            assert res.status_code == 201
        res = client.post(f"/api/v1/plans/{plan['id']}/final-matrix/threats/items", json={"text": "T5"})
        assert res.status_code == 409
        assert res.get_json()["details"] == {"quadrant": "threats", "cap": 5}

    def test_insert_item_requires_text(self, client, plan):
        res = client.post(f"/api/v1/plans/{plan['id']}/final-matrix/threats/items", json={})
        assert res.status_code == 400

    def test_plan_grids_follow_final_matrix(self, client, plan):
        client.put(f"/api/v1/plans/{plan['id']}/final-matrix", json={
            "opportunities": ["Export"], "strengths": ["Brand", "Team"],
        })
        res = client.patch(f"/api/v1/plans/{plan['id']}/grids/leverage/cells", json={"row": 0, "col": 1, "value": 30})
        assert res.status_code == 200
        grids = client.get(f"/api/v1/plans/{plan['id']}/grids").get_json()["grids"]
        assert grids["leverage"]["cells"] == [[0, 30]]


# ═════════════════════════════════════════════════════════════════════════════
# CLASSIFICATION & PROGRESS
# ═════════════════════════════════════════════════════════════════════════════

class TestClassification:
    def test_group_classification_seeded_from_items(self, client, plan):
        gid = _group_ids(plan)[0]
        client.put(f"/api/v1/groups/{gid}/swot", json={"threats": "Rates\nRival"})
        res = client.get(f"/api/v1/groups/{gid}/classification")
        assert res.status_code == 200
        data = res.get_json()
        assert [e["item"] for e in data["threats"]] == ["Rates", "Rival"]
        assert data["progress"] == {"classified_pct": 0, "treated_pct": 0}

    def test_save_group_classification(self, client, plan):
        data = _fill_finance(client, _group_ids(plan)[0])
        assert data["threats"][0]["classification"] == "mitigate"
        assert data["threats"][0]["treatment"] == "Hedge"
        assert data["opportunities"][0]["classification"] == "explore"
        assert data["filled_at"] is not None
        # 2 of 3 classified, 1 of 3 treated
        assert data["progress"] == {"classified_pct": 67, "treated_pct": 33}

    def test_invalid_strategy(self, client, plan):
        gid = _group_ids(plan)[0]
        client.put(f"/api/v1/groups/{gid}/swot", json={"threats": "Rates"})
        res = client.put(f"/api/v1/groups/{gid}/classification", json={
            "threats": [{"item": "Rates", "classification": "explore"}],
        })
        assert res.status_code == 422

    def test_unknown_item(self, client, plan):
        gid = _group_ids(plan)[0]
        res = client.put(f"/api/v1/groups/{gid}/classification", json={
            "threats": [{"item": "Weather", "classification": "avoid"}],
        })
        assert res.status_code == 404

    def test_final_classification_seeded_and_responses(self, client, plan):
        _fill_finance(client, _group_ids(plan)[0])
        client.post(f"/api/v1/plans/{plan['id']}/consolidate")

        res = client.get(f"/api/v1/plans/{plan['id']}/classification")
        assert res.status_code == 200
        data = res.get_json()
        assert data["threats"] == [{"item": "Rates", "classification": "mitigate", "treatment": ""}]
        assert data["opportunities"][0]["classification"] == "explore"

        res = client.get(f"/api/v1/plans/{plan['id']}/classification/responses?item=Novo%20Mercado%20")
        body = res.get_json()
        assert body["total"] == 1
        assert body["responses"][0]["group_name"] == "Finance"
        assert body["responses"][0]["classification"] == "explore"

    def test_reseed_without_auto(self, client, plan):
        _fill_finance(client, _group_ids(plan)[0])
        client.post(f"/api/v1/plans/{plan['id']}/consolidate")
        res = client.post(f"/api/v1/plans/{plan['id']}/classification/seed", json={"auto_seed": False})
        assert res.status_code == 200
        assert res.get_json()["threats"][0]["classification"] is None

    def test_responses_requires_item(self, client, plan):
        res = client.get(f"/api/v1/plans/{plan['id']}/classification/responses")
        assert res.status_code == 400


class TestProgress:
    def test_progress(self, client, plan):
        res = client.get(f"/api/v1/plans/{plan['id']}/progress")
        assert res.get_json()["swot_pct"] == 0

        _fill_finance(client, _group_ids(plan)[0])
        data = client.get(f"/api/v1/plans/{plan['id']}/progress").get_json()
        assert data["group_count"] == 2
        assert data["swot_pct"] == 50
        assert data["classification_pct"] == 50
        assert data["groups"][0]["filled"] is True
        assert data["groups"][1]["filled"] is False


class TestHealth:
    def test_live(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200

    def test_ready(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        checks = res.get_json()["checks"]
        assert checks["database"]["status"] == "ok"
        assert checks["cache"]["backend"] == "memory"
