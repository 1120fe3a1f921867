MESSAGES = {
    "checkout.enterDiscountCode": {
        "en": "Please enter a discount code.",
        "ar": "يرجى إدخال كود الخصم.",
    },
    "checkout.discountApplied": {
        "en": "Discount applied successfully!",
        "ar": "تم تطبيق الخصم بنجاح!",
    },
    "checkout.invalidOrExpiredDiscount": {
        "en": "Invalid or expired discount code.",
        "ar": "كود الخصم غير صالح أو منتهي الصلاحية.",
    },
    "checkout.pleaseLogin": {
        "en": "Please log in to complete your order.",
        "ar": "يرجى تسجيل الدخول لإتمام طلبك.",
    },
    "checkout.orderPlacementError": {
        "en": "Something went wrong while placing your order.",
        "ar": "حدث خطأ أثناء تنفيذ طلبك.",
    },
    "checkout.orderPlaced": {
        "en": "Your order has been placed.",
        "ar": "تم تنفيذ طلبك.",
    },
    "cart.emptyCheckout": {
        "en": "Your cart is empty. Add items before checking out.",
        "ar": "سلة التسوق فارغة. أضف منتجات قبل إتمام الشراء.",
    },
}

SUPPORTED_LANGUAGES = ("en", "ar")


class LanguageContext:
    def __init__(self, language: str = "en"):
        if language not in SUPPORTED_LANGUAGES:
            raise ValueError(f"Unsupported language: {language}")
        self.language = language

    @property
    def direction(self) -> str:
        return "rtl" if self.language == "ar" else "ltr"

    def t(self, key: str) -> str:
        entry = MESSAGES.get(key)
        if not entry:
            return key
        return entry.get(self.language) or entry["en"]

    def pick(self, localized: dict) -> str:
        """Choose the current language's text out of an ``{en, ar}`` pair."""
        if not localized:
            return ""
        return localized.get(self.language) or localized.get("en") or ""
