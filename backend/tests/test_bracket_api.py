"""
End-to-end HTTP flow: registration, groups, elimination, results and error mapping.
"""
from fastapi.testclient import TestClient


def _closed_tournament(client: TestClient, players: int = 12, fmt: str = "DUPLA_FIXA") -> int:
    response = client.post("/api/tournaments", json={"arena_id": 1, "name": "Etapa 1", "format": fmt})
    assert response.status_code == 201
    tournament_id = response.json()["id"]
    assert response.json()["status"] == "RASCUNHO"

    assert client.post(f"/api/tournaments/{tournament_id}/registrations/open").status_code == 200
    for player_id in range(1, players + 1):
        payload = {"player_id": player_id, "player_name": f"Jogador {player_id}"}
        if fmt == "TEAMS":
            payload["team_name"] = f"Equipe {(player_id - 1) // 2 + 1}"
        response = client.post(f"/api/tournaments/{tournament_id}/registrations", json=payload)
        assert response.status_code == 201, response.text
    response = client.post(f"/api/tournaments/{tournament_id}/registrations/close")
    assert response.json()["status"] == "INSCRICOES_ENCERRADAS"
    return tournament_id


def _form_groups(client: TestClient, tournament_id: int) -> dict:
    response = client.post(f"/api/tournaments/{tournament_id}/brackets/groups")
    assert response.status_code == 201, response.text
    return response.json()


def _play_groups(client: TestClient, tournament_id: int) -> None:
    for group in client.get(f"/api/tournaments/{tournament_id}/groups").json():
        for match in client.get(f"/api/tournaments/{tournament_id}/groups/{group['id']}/matches").json():
            response = client.put(
                f"/api/tournaments/{tournament_id}/matches/{match['id']}/result",
                json={"score": {"sets": [{"a": 6, "b": 2}]}},
            )
            assert response.status_code == 200, response.text


def _nodes(client: TestClient, tournament_id: int, phase: str) -> list:
    response = client.get(f"/api/tournaments/{tournament_id}/brackets", params={"phase": phase})
    assert response.status_code == 200
    return response.json()


def _record_node(client: TestClient, tournament_id: int, node_id: int, score: str = "6-3") -> dict:
    response = client.put(
        f"/api/tournaments/{tournament_id}/brackets/nodes/{node_id}/result",
        json={"score": score},
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_full_duo_tournament(client: TestClient):
    tournament_id = _closed_tournament(client)

    formed = _form_groups(client, tournament_id)
    assert formed["units"] == 6
    assert [g["size"] for g in formed["groups"]] == [3, 3]
    assert formed["matches"] == 6
    assert formed["tournament_status"] == "CHAVES_GERADAS"

    _play_groups(client, tournament_id)
    groups = client.get(f"/api/tournaments/{tournament_id}/groups").json()
    assert all(g["complete"] for g in groups)

    standings = client.get(f"/api/tournaments/{tournament_id}/groups/{groups[0]['id']}/standings").json()
    assert [row["position"] for row in standings["standings"]] == [1, 2, 3]
    assert sum(row["wins"] for row in standings["standings"]) == 3

    response = client.post(
        f"/api/tournaments/{tournament_id}/brackets/elimination",
        json={"qualifiers_per_group": 2},
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["first_phase"] == "SEMIFINAL"
    assert body["qualifiers"] == 4
    assert body["tournament_status"] == "SEMIFINAL"

    semis = _nodes(client, tournament_id, "SEMIFINAL")
    _record_node(client, tournament_id, semis[0]["id"])
    result = _record_node(client, tournament_id, semis[1]["id"])
    assert result["advancement"]["phases_created"] == ["FINAL"]
    assert result["tournament_status"] == "FINAL"

    final = _nodes(client, tournament_id, "FINAL")[0]
    assert final["slot_a_origin"] == "Vencedor Semifinal 1"
    result = _record_node(client, tournament_id, final["id"], "4-6 6-3 10-8")
    assert result["tournament_status"] == "FINALIZADA"

    tournament = client.get(f"/api/tournaments/{tournament_id}").json()
    assert tournament["status"] == "FINALIZADA"
    assert tournament["champion_unit_id"] == final["slot_a_unit_id"]

    stats = client.get(f"/api/tournaments/{tournament_id}/player-stats").json()
    assert len(stats) == 12
    assert sum(1 for s in stats if s["qualified"]) == 8


def test_elimination_leaf_edited_through_match_endpoint(client: TestClient):
    tournament_id = _closed_tournament(client)
    _form_groups(client, tournament_id)
    _play_groups(client, tournament_id)
    client.post(f"/api/tournaments/{tournament_id}/brackets/elimination", json={"qualifiers_per_group": 2})

    semi = _nodes(client, tournament_id, "SEMIFINAL")[0]
    node = _record_node(client, tournament_id, semi["id"])["node"]
    assert node["winner_unit_id"] == semi["slot_a_unit_id"]

    response = client.put(
        f"/api/tournaments/{tournament_id}/matches/{node['match_id']}/result",
        json={"score": "2-6"},
    )
    assert response.status_code == 200, response.text
    assert response.json()["node"]["winner_unit_id"] == semi["slot_b_unit_id"]


def test_cancel_and_delete_brackets(client: TestClient):
    tournament_id = _closed_tournament(client)
    _form_groups(client, tournament_id)
    _play_groups(client, tournament_id)
    client.post(f"/api/tournaments/{tournament_id}/brackets/elimination", json={"qualifiers_per_group": 2})

    response = client.delete(f"/api/tournaments/{tournament_id}/brackets/elimination")
    assert response.status_code == 200
    assert response.json()["nodes_deleted"] == 2
    assert response.json()["tournament_status"] == "GRUPOS"
    assert client.get(f"/api/tournaments/{tournament_id}/brackets").json() == []

    # Groups survive, so the elimination phase can be generated again
    response = client.post(f"/api/tournaments/{tournament_id}/brackets/elimination", json={"qualifiers_per_group": 1})
    assert response.status_code == 201
    assert response.json()["first_phase"] == "FINAL"

    response = client.delete(f"/api/tournaments/{tournament_id}/brackets")
    assert response.status_code == 200
    assert response.json()["tournament_status"] == "INSCRICOES_ENCERRADAS"
    assert client.get(f"/api/tournaments/{tournament_id}/groups").json() == []

    _form_groups(client, tournament_id)


def test_team_template_flow(client: TestClient):
    tournament_id = _closed_tournament(client, players=12, fmt="TEAMS")
    formed = _form_groups(client, tournament_id)
    assert formed["units"] == 6

    _play_groups(client, tournament_id)
    response = client.post(f"/api/tournaments/{tournament_id}/brackets/elimination", json={"qualifiers_per_group": 2})
    assert response.status_code == 201, response.text
    body = response.json()
    assert len(body["nodes"]) == 15
    assert body["tournament_status"] == "SEMIFINAL"
    assert all(n["status"] == "FINISHED" for n in _nodes(client, tournament_id, "OITAVAS"))


def test_close_tournament_awards_placement_points(client: TestClient):
    tournament_id = _closed_tournament(client)
    _form_groups(client, tournament_id)
    _play_groups(client, tournament_id)
    client.post(f"/api/tournaments/{tournament_id}/brackets/elimination", json={"qualifiers_per_group": 2})

    response = client.post(f"/api/tournaments/{tournament_id}/close")
    assert response.status_code == 422
    assert "pendentes" in response.json()["detail"]

    for node in _nodes(client, tournament_id, "SEMIFINAL"):
        _record_node(client, tournament_id, node["id"])
    final = _nodes(client, tournament_id, "FINAL")[0]
    _record_node(client, tournament_id, final["id"])

    response = client.post(f"/api/tournaments/{tournament_id}/close")
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["champion_unit_id"] == final["slot_a_unit_id"]
    assert body["units_placed"] == 6
    assert body["tournament_status"] == "FINALIZADA"

    tournament = client.get(f"/api/tournaments/{tournament_id}").json()
    assert tournament["closed_at"] is not None
    stats = client.get(f"/api/tournaments/{tournament_id}/player-stats").json()
    by_points = sorted(s["placement_points"] for s in stats)
    assert by_points == [10, 10, 10, 10, 50, 50, 50, 50, 70, 70, 100, 100]
    assert {s["placement"] for s in stats if s["unit_id"] == final["slot_a_unit_id"]} == {"campeao"}

    assert client.post(f"/api/tournaments/{tournament_id}/close").status_code == 422
    response = client.put(
        f"/api/tournaments/{tournament_id}/brackets/nodes/{final['id']}/result",
        json={"score": "2-6"},
    )
    assert response.status_code == 422


class TestErrorMapping:
    def test_unknown_tournament_is_404(self, client: TestClient):
        assert client.post("/api/tournaments/999/brackets/groups").status_code == 404
        assert client.get("/api/tournaments/999/brackets").status_code == 404

    def test_groups_require_closed_registrations(self, client: TestClient):
        tournament_id = client.post("/api/tournaments", json={"arena_id": 1, "name": "Etapa 2"}).json()["id"]
        response = client.post(f"/api/tournaments/{tournament_id}/brackets/groups")
        assert response.status_code == 422

    def test_invalid_score_is_422(self, client: TestClient):
        tournament_id = _closed_tournament(client)
        _form_groups(client, tournament_id)
        group = client.get(f"/api/tournaments/{tournament_id}/groups").json()[0]
        match = client.get(f"/api/tournaments/{tournament_id}/groups/{group['id']}/matches").json()[0]
        response = client.put(
            f"/api/tournaments/{tournament_id}/matches/{match['id']}/result",
            json={"score": "6-6"},
        )
        assert response.status_code == 422
        assert "empatado" in response.json()["detail"]

    def test_stale_revision_is_409(self, client: TestClient):
        tournament_id = _closed_tournament(client)
        _form_groups(client, tournament_id)
        group = client.get(f"/api/tournaments/{tournament_id}/groups").json()[0]
        match = client.get(f"/api/tournaments/{tournament_id}/groups/{group['id']}/matches").json()[0]
        url = f"/api/tournaments/{tournament_id}/matches/{match['id']}/result"
        assert client.put(url, json={"score": "6-1", "expected_revision": 0}).status_code == 200
        assert client.put(url, json={"score": "6-4", "expected_revision": 0}).status_code == 409

    def test_stale_leaf_revision_through_match_endpoint_is_409(self, client: TestClient):
        tournament_id = _closed_tournament(client)
        _form_groups(client, tournament_id)
        _play_groups(client, tournament_id)
        client.post(f"/api/tournaments/{tournament_id}/brackets/elimination", json={"qualifiers_per_group": 2})
        semi = _nodes(client, tournament_id, "SEMIFINAL")[0]
        node = _record_node(client, tournament_id, semi["id"])["node"]

        url = f"/api/tournaments/{tournament_id}/matches/{node['match_id']}/result"
        assert client.put(url, json={"score": "2-6", "expected_revision": 7}).status_code == 409
        assert _nodes(client, tournament_id, "SEMIFINAL")[0]["winner_unit_id"] == semi["slot_a_unit_id"]

    def test_elimination_before_groups_finish_is_422(self, client: TestClient):
        tournament_id = _closed_tournament(client)
        _form_groups(client, tournament_id)
        response = client.post(f"/api/tournaments/{tournament_id}/brackets/elimination", json={"qualifiers_per_group": 2})
        assert response.status_code == 422

    def test_unknown_group_is_404(self, client: TestClient):
        tournament_id = _closed_tournament(client)
        _form_groups(client, tournament_id)
        assert client.get(f"/api/tournaments/{tournament_id}/groups/999/standings").status_code == 404

    def test_invalid_phase_is_422(self, client: TestClient):
        tournament_id = _closed_tournament(client)
        response = client.get(f"/api/tournaments/{tournament_id}/brackets", params={"phase": "REPESCAGEM"})
        assert response.status_code == 422


class TestRegistration:
    def test_duplicate_registration_is_409(self, client: TestClient):
        tournament_id = client.post("/api/tournaments", json={"arena_id": 1, "name": "Etapa 3"}).json()["id"]
        client.post(f"/api/tournaments/{tournament_id}/registrations/open")
        payload = {"player_id": 7, "player_name": "Jogador 7"}
        assert client.post(f"/api/tournaments/{tournament_id}/registrations", json=payload).status_code == 201
        assert client.post(f"/api/tournaments/{tournament_id}/registrations", json=payload).status_code == 409

    def test_registration_closed_is_422(self, client: TestClient):
        tournament_id = client.post("/api/tournaments", json={"arena_id": 1, "name": "Etapa 4"}).json()["id"]
        payload = {"player_id": 1, "player_name": "Jogador 1"}
        assert client.post(f"/api/tournaments/{tournament_id}/registrations", json=payload).status_code == 422

    def test_teams_require_team_name(self, client: TestClient):
        tournament_id = client.post(
            "/api/tournaments", json={"arena_id": 1, "name": "Etapa 5", "format": "TEAMS"}
        ).json()["id"]
        client.post(f"/api/tournaments/{tournament_id}/registrations/open")
        payload = {"player_id": 1, "player_name": "Jogador 1"}
        assert client.post(f"/api/tournaments/{tournament_id}/registrations", json=payload).status_code == 422

    def test_protected_seeds(self, client: TestClient):
        tournament_id = client.post("/api/tournaments", json={"arena_id": 1, "name": "Etapa 6"}).json()["id"]
        client.post(f"/api/tournaments/{tournament_id}/registrations/open")
        for player_id in (1, 2, 3):
            client.post(
                f"/api/tournaments/{tournament_id}/registrations",
                json={"player_id": player_id, "player_name": f"Jogador {player_id}"},
            )
        url = f"/api/tournaments/{tournament_id}/protected-seeds"
        assert client.put(url, json={"player_ids": [1, 9]}).status_code == 422
        assert client.put(url, json={"player_ids": [3, 1]}).json()["player_ids"] == [1, 3]
        assert client.get(url).json()["player_ids"] == [1, 3]
