"""External integrations for checkout."""
from .mercadopago_client import MercadoPagoClient, MercadoPagoError
from .provider import PaymentProvider, PreferenceResult, ProviderError, ProviderPayment

__all__ = [
    "MercadoPagoClient",
    "MercadoPagoError",
    "PaymentProvider",
    "PreferenceResult",
    "ProviderError",
    "ProviderPayment",
]
