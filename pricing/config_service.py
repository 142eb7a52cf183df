"""
Loading, caching and saving the active pricing configuration
"""
import json
import logging
import time
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from config import Config
from database.models import AddOnModel, PricingConfigModel
from pricing.calculator import PriceCalculator
from pricing.rates import RateConfig
from pricing.types import PricingError

logger = logging.getLogger(__name__)


def _parse_config_data(raw) -> Dict:
    if isinstance(raw, str):
        return json.loads(raw)
    return raw or {}


class PriceConfigService:
    """Process-wide cache in front of the pricing_config table"""

    _cache: Optional[RateConfig] = None
    _cache_timestamp: float = 0

    @classmethod
    def cache_ttl(cls) -> int:
        return Config.PRICING_CACHE_TTL

    @classmethod
    def load_config(cls) -> RateConfig:
        """Load the active config from the database, falling back to defaults"""
        try:
            row = PricingConfigModel.get_active()
            if not row or not row.get('config_data'):
                logger.warning("Pricing config not found in database, using fallback")
                return cls.get_fallback_config()
            config = RateConfig.from_dict(_parse_config_data(row['config_data']))
            errors = config.validate()
            if errors:
                logger.warning(f"Stored pricing config {row.get('id')} is invalid, using fallback: {'; '.join(errors)}")
                return cls.get_fallback_config()
            cls._cache_config(config)
            return config
        except Exception as e:
            logger.error(f"Failed to load pricing config from database: {e}")
            return cls.get_fallback_config()

    @classmethod
    def get_config(cls) -> RateConfig:
        if cls._cache is not None and time.time() - cls._cache_timestamp < cls.cache_ttl():
            return cls._cache
        return cls.load_config()

    @staticmethod
    def get_fallback_config() -> RateConfig:
        config = RateConfig.default()
        config.config_name = 'fallback'
        return config

    @classmethod
    def _cache_config(cls, config: RateConfig):
        cls._cache = config
        cls._cache_timestamp = time.time()

    @classmethod
    def clear_cache(cls):
        cls._cache = None
        cls._cache_timestamp = 0

    @classmethod
    def save_config(cls, config: RateConfig, valid_from: Optional[str] = None,
                    valid_until: Optional[str] = None) -> Dict:
        """Store config as the single active version"""
        PricingConfigModel.deactivate_all()
        row = PricingConfigModel.insert({
            'config_name': config.config_name,
            'config_data': json.dumps(config.to_dict()),
            'is_active': True,
            'valid_from': valid_from or datetime.now().isoformat(),
            'valid_until': valid_until,
        })
        cls.clear_cache()
        logger.info(f"Saved pricing config {config.config_name} {config.version}")
        return row

    @classmethod
    def get_editable_config(cls) -> Dict:
        return cls.get_config().to_dict()

    @classmethod
    def build_config(cls, data: Dict) -> RateConfig:
        """
        Parse and validate an edited config
        Raises:
            PricingError: listing every problem found
        """
        if not isinstance(data, dict):
            raise PricingError('Pricing config must be an object')
        try:
            config = RateConfig.from_dict(data)
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            raise PricingError(f'Invalid pricing config: {e}')
        errors = config.validate()
        if errors:
            raise PricingError('; '.join(errors))
        return config

    @classmethod
    def update_editable_config(cls, data: Dict) -> RateConfig:
        config = cls.build_config(data)
        config.version = f'v{int(time.time() * 1000)}'
        config.last_updated = datetime.now().isoformat()
        cls.save_config(config, data.get('valid_from'), data.get('valid_until'))
        return config

    @classmethod
    def restore_config(cls, config_id) -> RateConfig:
        """Re-activate a stored version as a new active row"""
        row = PricingConfigModel.get_by_id(config_id)
        if not row:
            raise PricingError(f'Pricing config {config_id} not found')
        try:
            data = _parse_config_data(row.get('config_data'))
        except ValueError as e:
            raise PricingError(f'Stored pricing config {config_id} is unreadable: {e}')
        config = cls.build_config(data)
        config.version = f'v{int(time.time() * 1000)}'
        config.last_updated = datetime.now().isoformat()
        cls.save_config(config)
        return config

    @staticmethod
    def list_history(limit: int = 10, offset: int = 0) -> Tuple[List[Dict], int]:
        rows, count = PricingConfigModel.history(limit, offset)
        history = []
        for row in rows:
            data = _parse_config_data(row.get('config_data'))
            history.append({
                'id': row.get('id'),
                'config_name': row.get('config_name'),
                'version': data.get('version'),
                'is_active': row.get('is_active'),
                'valid_from': row.get('valid_from'),
                'valid_until': row.get('valid_until'),
                'created_at': row.get('created_at'),
                'config': data,
            })
        return history, count


def build_calculator(config: Optional[RateConfig] = None):
    """Calculator over the active config with add_ons table rows merged in"""
    config = config or PriceConfigService.get_config()
    try:
        config = config.with_addon_rows(AddOnModel.get_all())
    except Exception as e:
        logger.warning(f"Add-on catalog unavailable, using configured add-on rates: {e}")
    return PriceCalculator(config)
