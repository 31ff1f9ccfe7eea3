from __future__ import annotations

from .checkout import get_top_up_options, prepare_subscription, prepare_top_up, prepare_tourist_pass
from .completion import apply_completed_checkout


class PurchaseService:
    get_top_up_options = staticmethod(get_top_up_options)
    prepare_top_up = staticmethod(prepare_top_up)
    prepare_tourist_pass = staticmethod(prepare_tourist_pass)
    prepare_subscription = staticmethod(prepare_subscription)
    apply_completed_checkout = staticmethod(apply_completed_checkout)


__all__ = ["PurchaseService"]
