import logging
import uuid

from config.settings import mask_sensitive_data


class TestCorrelationIdMiddleware:
    def test_returns_provided_request_id(self, client):
        custom_id = "my-custom-request-id-123"
        response = client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        assert response["X-Request-ID"] == custom_id

    def test_generates_uuid_when_no_request_id(self, client):
        response = client.get("/health")
        request_id = response["X-Request-ID"]
        parsed = uuid.UUID(request_id, version=4)
        assert str(parsed) == request_id

    def test_correlation_id_in_logs(self, client, caplog):
        custom_id = "log-test-correlation-456"
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        found = any(custom_id in record.getMessage() for record in caplog.records)
        assert found, (
            f"correlation_id '{custom_id}' not found in log records: "
            f"{[r.getMessage() for r in caplog.records]}"
        )


class TestSensitiveDataMasking:
    def test_email_masked(self):
        event_dict = {"event": "order.placement_started", "customer_email": "ana@example.com"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "ana@example.com" not in result["customer_email"]
        assert "***MASKED***" in result["customer_email"]

    def test_password_masked(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]

    def test_non_string_values_untouched(self):
        event_dict = {"event": "order.stock_reserved", "quantity": 2}
        assert mask_sensitive_data(None, None, event_dict)["quantity"] == 2

    def test_non_sensitive_data_unchanged(self):
        event_dict = {"event": "order.placed", "order_number": "ORD-20250101-ABCD1234"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_number"] == "ORD-20250101-ABCD1234"
        assert result["event"] == "order.placed"
