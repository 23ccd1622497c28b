import pytest

from keen.errors import (
    CapacityExceededError,
    ConfigValidationError,
    DeliveryError,
    HttpError,
    KeenError,
    MissingCredentialError,
    TransportError,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "error, exit_code",
    [
        (KeenError(), 1),
        (ConfigValidationError("batch_size", "must be a positive integer"), 65),
        (MissingCredentialError("Write key"), 66),
        (HttpError(500, "boom"), 67),
        (TransportError(reason="refused"), 67),
        (CapacityExceededError("pid", "logs", 10), 68),
    ],
)
def test_exit_codes(error: KeenError, exit_code: int) -> None:
    assert error.get_exit_code() == exit_code


@pytest.mark.unit
class TestMessages:
    def test_validation_message(self) -> None:
        error = ConfigValidationError("batch_size", "must be a positive integer")

        assert str(error) == "Invalid value for 'batch_size': must be a positive integer"

    def test_http_error_carries_status_and_body(self) -> None:
        error = HttpError(404, '{"message": "not found"}')

        assert isinstance(error, DeliveryError)
        assert error.status_code == 404
        assert "HTTP 404" in error.message
        assert "not found" in error.message

    def test_transport_error_details(self) -> None:
        assert "Details: refused" in TransportError(reason="refused").message
        assert "Details" not in TransportError().message
