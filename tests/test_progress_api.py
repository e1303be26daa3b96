"""
Section and daily progress endpoint tests
"""
import uuid

import pytest


@pytest.fixture
def book(client, auth_headers):
    response = client.post(
        "/api/wordbooks",
        json={"title": "Unit 1", "words": [{"word": f"w{i}"} for i in range(25)]},
        headers=auth_headers
    )
    return response.json()["wordbook"]


class TestSectionProgress:
    """Upserts keyed by (user, wordbook)"""

    def test_upsert_then_list(self, client, auth_headers, book):
        response = client.post(
            "/api/progress/sections",
            json={"records": [{"wordbookId": book["id"], "completedPages": 2, "completedPasses": 1}]},
            headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json() == {"success": True}

        records = client.get("/api/progress/sections", headers=auth_headers).json()["records"]
        assert len(records) == 1
        assert records[0]["wordbookId"] == book["id"]
        assert (records[0]["completedPages"], records[0]["completedPasses"]) == (2, 1)

    def test_second_upsert_overwrites(self, client, auth_headers, book):
        for pages in (1, 3):
            client.post(
                "/api/progress/sections",
                json={"records": [{"wordbookId": book["id"], "completedPages": pages, "completedPasses": 0}]},
                headers=auth_headers
            )
        records = client.get("/api/progress/sections", headers=auth_headers).json()["records"]
        assert [r["completedPages"] for r in records] == [3]

    def test_filter_by_wordbook(self, client, auth_headers, book):
        client.post(
            "/api/progress/sections",
            json={"records": [{"wordbookId": book["id"], "completedPages": 1, "completedPasses": 0}]},
            headers=auth_headers
        )
        other = client.get(f"/api/progress/sections?wordbookId={uuid.uuid4()}", headers=auth_headers)
        assert other.json()["records"] == []

    def test_negative_pages_are_rejected(self, client, auth_headers, book):
        response = client.post(
            "/api/progress/sections",
            json={"records": [{"wordbookId": book["id"], "completedPages": -1, "completedPasses": 0}]},
            headers=auth_headers
        )
        assert response.status_code == 400

    def test_empty_batch_is_rejected(self, client, auth_headers):
        response = client.post("/api/progress/sections", json={"records": []}, headers=auth_headers)
        assert response.status_code == 400

    def test_foreign_wordbook_rejects_whole_batch(self, client, auth_headers, other_auth_headers, book):
        theirs = client.post("/api/wordbooks", json={"title": "theirs"}, headers=other_auth_headers).json()["wordbook"]

        response = client.post(
            "/api/progress/sections",
            json={"records": [
                {"wordbookId": book["id"], "completedPages": 1, "completedPasses": 0},
                {"wordbookId": theirs["id"], "completedPages": 1, "completedPasses": 0},
            ]},
            headers=auth_headers
        )

        assert response.status_code == 403
        assert client.get("/api/progress/sections", headers=auth_headers).json()["records"] == []

    def test_progress_is_per_user(self, client, auth_headers, other_auth_headers, book):
        client.post(
            "/api/progress/sections",
            json={"records": [{"wordbookId": book["id"], "completedPages": 1, "completedPasses": 0}]},
            headers=auth_headers
        )
        assert client.get("/api/progress/sections", headers=other_auth_headers).json()["records"] == []


class TestDailyProgress:
    """Upserts keyed by (user, date)"""

    def test_upsert_replaces_and_filters_by_range(self, client, auth_headers):
        client.post(
            "/api/progress/daily",
            json={"records": [
                {"date": "2024-03-01", "wordsLearned": 10},
                {"date": "2024-03-02", "wordsLearned": 20},
                {"date": "2024-03-05", "wordsLearned": 5},
            ]},
            headers=auth_headers
        )
        client.post(
            "/api/progress/daily",
            json={"records": [{"date": "2024-03-02", "wordsLearned": 30}]},
            headers=auth_headers
        )

        response = client.get(
            "/api/progress/daily?startDate=2024-03-02&endDate=2024-03-05",
            headers=auth_headers
        )
        assert response.status_code == 200
        records = response.json()["records"]
        assert [(r["date"], r["wordsLearned"]) for r in records] == [("2024-03-02", 30), ("2024-03-05", 5)]

    @pytest.mark.parametrize("bad_date", ["2024-3-1", "2024/03/01", "2024-02-30", "yesterday"])
    def test_malformed_record_date_is_400(self, client, auth_headers, bad_date):
        response = client.post(
            "/api/progress/daily",
            json={"records": [{"date": bad_date, "wordsLearned": 1}]},
            headers=auth_headers
        )
        assert response.status_code == 400

    def test_malformed_query_date_is_400(self, client, auth_headers):
        response = client.get("/api/progress/daily?startDate=2024-3-1", headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "startDate 格式应为 yyyy-MM-dd"
