"""
Storefront checkout flow.

CheckoutSession drives the API the way the checkout page does: apply or
remove a discount code, then place the order. It talks to the API through
an ``httpx.Client`` so the same code runs against a live server or the
app's TestClient.

States::

    editing -> applying-discount -> editing
    editing -> placing-order -> success | editing (with an error notification)
"""
from enum import Enum
from typing import List, Optional

import httpx
import structlog
from pydantic import BaseModel

from cart import Cart
from i18n import LanguageContext
from pricing import final_total
from schemas import AppliedDiscount, ShippingAddress

logger = structlog.get_logger(__name__)

LOGIN_PATH = "/login"


class CheckoutState(str, Enum):
    EDITING = "editing"
    APPLYING_DISCOUNT = "applying-discount"
    PLACING_ORDER = "placing-order"
    SUCCESS = "success"


class CheckoutBusyError(RuntimeError):
    """Raised when an action starts while another request is still in flight."""


class Notification(BaseModel):
    level: str
    message: str


class AuthContext:
    def __init__(self, token: Optional[str] = None, user: Optional[dict] = None):
        self.token = token
        self.user = user

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def logout(self):
        self.token = None
        self.user = None


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("message")
    return None


class CheckoutSession:
    def __init__(
        self,
        client: httpx.Client,
        auth: AuthContext,
        cart: Cart,
        language: Optional[LanguageContext] = None,
        shipping_address: Optional[ShippingAddress] = None,
        payment_method: str = "Cash on Delivery",
    ):
        self.client = client
        self.auth = auth
        self.cart = cart
        self.language = language or LanguageContext("en")
        self.shipping_address = shipping_address
        self.payment_method = payment_method

        self.state = CheckoutState.EDITING
        self.discount_code = ""
        self.applied_discount: Optional[AppliedDiscount] = None
        self.created_order: Optional[dict] = None
        self.redirect_to: Optional[str] = None
        self.notifications: List[Notification] = []

    # ----------------------- totals -----------------------
    @property
    def subtotal(self) -> float:
        return self.cart.subtotal

    @property
    def discount_amount(self) -> float:
        return self.applied_discount.amount if self.applied_discount else 0

    @property
    def final_total(self) -> float:
        return final_total(self.subtotal, self.discount_amount)

    # ----------------------- helpers -----------------------
    def _notify(self, level: str, message: str):
        self.notifications.append(Notification(level=level, message=message))

    def _begin(self, state: CheckoutState):
        if self.state in (CheckoutState.APPLYING_DISCOUNT, CheckoutState.PLACING_ORDER):
            raise CheckoutBusyError(f"Checkout is busy ({self.state.value})")
        if self.state == CheckoutState.SUCCESS:
            raise CheckoutBusyError("Order already placed")
        self.state = state

    def set_discount_code(self, code: str):
        self.discount_code = code.upper()

    # ----------------------- actions -----------------------
    def apply_discount(self) -> bool:
        if not self.discount_code.strip():
            self._notify("warning", self.language.t("checkout.enterDiscountCode"))
            return False

        self._begin(CheckoutState.APPLYING_DISCOUNT)
        try:
            response = self.client.post(
                "/api/discounts/validate",
                json={"code": self.discount_code, "totalAmount": self.subtotal},
                headers=self.auth.headers(),
            )
            if response.is_success:
                data = response.json()
                self.applied_discount = AppliedDiscount(code=data["code"], amount=data["discountAmount"])
                self._notify("success", self.language.t("checkout.discountApplied"))
                return True
            message = _error_message(response) or self.language.t("checkout.invalidOrExpiredDiscount")
            self._notify("error", message)
            return False
        except httpx.HTTPError as e:
            logger.warning("discount_request_failed", code=self.discount_code, error=str(e))
            self._notify("error", self.language.t("checkout.invalidOrExpiredDiscount"))
            return False
        finally:
            self.state = CheckoutState.EDITING

    def remove_discount(self):
        self.applied_discount = None
        self.discount_code = ""

    def place_order(self) -> bool:
        if not self.auth.is_authenticated:
            self._notify("info", self.language.t("checkout.pleaseLogin"))
            self.redirect_to = LOGIN_PATH
            return False
        if self.cart.is_empty:
            self._notify("warning", self.language.t("cart.emptyCheckout"))
            return False

        self._begin(CheckoutState.PLACING_ORDER)
        payload = {
            "shippingAddress": self.shipping_address.model_dump() if self.shipping_address else None,
            "paymentMethod": self.payment_method,
            "items": self.cart.to_order_items(),
            "discount": self.applied_discount.model_dump() if self.applied_discount else None,
        }
        try:
            response = self.client.post("/api/orders", json=payload, headers=self.auth.headers())
        except httpx.HTTPError as e:
            logger.warning("order_request_failed", error=str(e))
            self._notify("error", self.language.t("checkout.orderPlacementError"))
            self.state = CheckoutState.EDITING
            return False

        if not response.is_success:
            message = _error_message(response) or self.language.t("checkout.orderPlacementError")
            self._notify("error", message)
            self.state = CheckoutState.EDITING
            return False

        self.created_order = response.json()
        self.state = CheckoutState.SUCCESS
        self.cart.clear()
        self._notify("success", self.language.t("checkout.orderPlaced"))
        return True
