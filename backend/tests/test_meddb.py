from __future__ import annotations

from medassist_core.drugs import build_drug_suggestions
from medassist_providers import MissingCredentialsError, ProviderError

LABELS = [
    {"openfda": {"brand_name": ["Glucophage"], "generic_name": ["METFORMIN HYDROCHLORIDE"]},
     "active_ingredient": ["Metformin hydrochloride 500 mg"]},
    {"openfda": {"generic_name": ["METFORMIN HYDROCHLORIDE"]},
     "active_ingredient": ["Metformin hydrochloride 850 mg"]},
    {"openfda": {"brand_name": ["Metformin ER"]}, "active_ingredient": ["Metformin 750 mg"]},
    {"openfda": {"brand_name": ["Metformin ER"]}, "active_ingredient": ["Metformin 750 mg"]},
    {"openfda": {}, "active_ingredient": ["Unknown"]},
    {"active_ingredient": ["No metadata"]},
]


def test_suggestions_only_contain_query_substring():
    suggestions = build_drug_suggestions(LABELS, "metFORmin")
    assert suggestions == [
        {"name": "METFORMIN HYDROCHLORIDE", "strength": "Metformin hydrochloride 850 mg"},
        {"name": "Metformin ER", "strength": "Metformin 750 mg"},
    ]
    assert all("metformin" in item["name"].lower() for item in suggestions)


def test_meddb_filters_results_case_insensitively(client, backend_module, monkeypatch):
    queries = []

    def fake_search(query):
        queries.append(query)
        return LABELS

    monkeypatch.setattr(backend_module, "_search_drug_labels", fake_search)
    response = client.get("/api/meddb", params={"q": "  Metformin "})
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["query"] == "Metformin"
    assert payload["total"] == 2
    assert {item["name"] for item in payload["suggestions"]} == {"METFORMIN HYDROCHLORIDE", "Metformin ER"}
    assert queries == ["Metformin"]


def test_meddb_requires_query(client):
    response = client.get("/api/meddb")
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["suggestions"] == []

    response = client.get("/api/meddb", params={"q": "   "})
    assert response.status_code == 400


def test_meddb_reports_no_results(client, backend_module, monkeypatch):
    monkeypatch.setattr(backend_module, "_search_drug_labels", lambda query: [])
    response = client.get("/api/meddb", params={"q": "zzzz"})
    assert response.status_code == 200
    assert response.json() == {"success": False, "message": "No results found", "suggestions": []}


def test_meddb_missing_key_and_provider_errors_return_500(client, backend_module, monkeypatch):
    def missing_key(query):
        raise MissingCredentialsError("openfda", "FDA_API_KEY is not configured.")

    monkeypatch.setattr(backend_module, "_search_drug_labels", missing_key)
    response = client.get("/api/meddb", params={"q": "aspirin"})
    assert response.status_code == 500
    assert response.json()["message"] == "FDA API key is not configured"

    def upstream_down(query):
        raise ProviderError("openfda", "bad gateway", 502)

    monkeypatch.setattr(backend_module, "_search_drug_labels", upstream_down)
    response = client.get("/api/meddb", params={"q": "aspirin"})
    assert response.status_code == 500
    assert response.json()["message"] == "Error fetching medication data"
