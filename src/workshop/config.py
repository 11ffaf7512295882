"""Runtime settings for the workshop domain.

Values come from the ``[custom]`` section of ``domain.toml`` and can be
overridden per deployment with ``WORKSHOP_*`` environment variables.
"""

import os

from protean.utils.globals import current_domain

DEFAULT_SALES_COMMISSION_RATE = 5.0
DEFAULT_ITEM_LOCK_TIMEOUT = 5.0


def _custom_setting(name: str, env_var: str, default: float) -> float:
    raw = os.getenv(env_var)
    if raw is None:
        custom = current_domain.config.get("custom") or {}
        raw = custom.get(name, default)
    return float(raw)


def sales_commission_rate() -> float:
    """Sales commission rate in percent of the order total."""
    return _custom_setting("SALES_COMMISSION_RATE", "WORKSHOP_SALES_COMMISSION_RATE", DEFAULT_SALES_COMMISSION_RATE)


def item_lock_timeout() -> float:
    """Seconds to wait for a per-item lock before giving up."""
    return _custom_setting("ITEM_LOCK_TIMEOUT", "WORKSHOP_ITEM_LOCK_TIMEOUT", DEFAULT_ITEM_LOCK_TIMEOUT)
