"""
Tests for the FastAPI endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from statement_ledger.core import AIServiceError, ErrorKind, LedgerPipeline, PipelineConfig
from statement_ledger.web.app import app, get_pipeline

from conftest import FakeAIClient, FakeNormalizer

PDF = ("statement.pdf", b"%PDF-1.4 fake", "application/pdf")


@pytest.fixture
def api():
    """TestClient whose pipeline is backed by a scripted AI client."""
    state = {"client": FakeAIClient()}

    def override():
        config = PipelineConfig(page_delay=0, rate_limit_cooldown=0)
        return LedgerPipeline(config, client=state["client"], normalizer=FakeNormalizer())

    app.dependency_overrides[get_pipeline] = override
    with TestClient(app) as client:
        yield client, state
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self):
        with TestClient(app) as client:
            response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestStatementEndpoint:
    """Tests for POST /api/statements."""

    def test_statement_upload(self, api):
        client, state = api
        state["client"] = FakeAIClient([
            {
                "columnMapping": {
                    "dateIndex": 0, "descriptionIndex": 1, "debitIndex": 2, "creditIndex": 3, "balanceIndex": 4,
                },
                "currency": "AED",
            },
            {
                "summary": {"accountNumber": "1012345678", "openingBalance": 100},
                "currency": "AED",
                "markdownTable": "| 01/01/2024 | Coffee | 10 | | 90 |",
            },
            {"transactions": [
                {"date": "01/01/2024", "description": "Coffee", "debit": "10", "credit": "0", "balance": "90"},
            ]},
        ])

        response = client.post("/api/statements", files=[("files", PDF)])

        assert response.status_code == 200
        body = response.json()
        assert body["currency"] == "AED"
        assert body["transactions"][0]["description"] == "Coffee"
        assert body["transactions"][0]["balance"] == 90.0
        assert body["summary"]["account_number"] == "1012345678"
        assert body["summary"]["account_holder"] == "N/A"
        assert body["summary"]["closing_balance"] == 90.0

    def test_empty_file_rejected(self, api):
        client, _ = api

        response = client.post("/api/statements", files=[("files", ("empty.pdf", b"", "application/pdf"))])

        assert response.status_code == 400
        assert "empty" in response.json()["detail"]

    def test_fatal_ai_error_maps_to_502(self, api):
        client, state = api
        state["client"] = FakeAIClient([
            AIServiceError("API key not valid", ErrorKind.FATAL),
        ])

        response = client.post("/api/statements", files=[("files", PDF)])

        assert response.status_code == 502
        assert "API key not valid" in response.json()["detail"]

    def test_missing_gemini_config(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_PROJECT_ID", raising=False)

        with TestClient(app) as client:
            response = client.post("/api/statements", files=[("files", PDF)])

        assert response.status_code == 400
        assert "GEMINI_API_KEY" in response.json()["detail"]


class TestInvoiceEndpoint:
    """Tests for POST /api/invoices."""

    def test_invoice_upload_classified(self, api):
        client, state = api
        state["client"] = FakeAIClient([{
            "invoices": [{
                "invoiceId": "INV-7",
                "vendorName": "Acme Trading LLC",
                "customerName": "Beta Stores",
                "invoiceDate": "05/02/2024",
                "currency": "AED",
                "totalAmount": 210,
                "totalTax": 10,
                "totalBeforeTax": 200,
            }]
        }])

        response = client.post(
            "/api/invoices",
            files=[("files", ("invoice.pdf", b"%PDF-1.4 inv", "application/pdf"))],
            data={"company_name": "Acme Trading"},
        )

        assert response.status_code == 200
        body = response.json()
        assert len(body["sales_invoices"]) == 1
        assert body["purchase_invoices"] == []
        invoice = body["sales_invoices"][0]
        assert invoice["invoice_id"] == "INV-7"
        assert invoice["totals"]["amount"] == 210.0
        assert invoice["normalized_totals"]["amount"] == 210.0
        assert invoice["source_file"] == "invoice.pdf"
