"""
Pricing engine for the lodging booking service
"""
from pricing.types import PricingError
from pricing.rates import RateConfig
from pricing.calculator import PriceCalculator
__all__ = [
'PricingError',
'RateConfig',
'PriceCalculator'
]
