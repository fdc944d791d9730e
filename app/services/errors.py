"""Request-facing pricing errors."""


class PricingError(Exception):
    """Base exception for errors surfaced to API callers."""
    status_code = 400

    def to_dict(self) -> dict:
        return {'error': str(self)}


class ValidationError(PricingError):
    """A request field is missing, malformed or out of range."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        return {'error': str(self), 'field': self.field}


class UnsupportedCurrencyError(PricingError):
    """Requested currency is not present in the rate snapshot."""

    def __init__(self, currency: str):
        super().__init__(f'Unsupported currency: {currency}')
        self.currency = currency

    def to_dict(self) -> dict:
        return {'error': str(self), 'currency': self.currency}
