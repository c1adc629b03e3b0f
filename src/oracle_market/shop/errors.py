"""Market failures. Every error aborts the operation with no partial writes; codes are stable."""
from __future__ import annotations

from oracle_market.domain.errors import DomainError


class MarketError(DomainError):
    code = "MARKET_ERROR"


# Authorization


class Unauthorized(MarketError):
    code = "UNAUTHORIZED"
    category = "authorization"
    status_code = 403
    default_message = "Administrator credential does not match this shop"


# Validation


class ValidationError(MarketError):
    category = "validation"
    status_code = 422


class InvalidInput(ValidationError):
    code = "INVALID_INPUT"
    default_message = "Invalid input"


class InvalidFeedId(ValidationError):
    code = "INVALID_FEED_ID"
    default_message = "Feed id must be exactly 32 bytes"


class UnsupportedDecimals(ValidationError):
    code = "UNSUPPORTED_DECIMALS"
    default_message = "Currency decimals exceed the supported scaling power"


class InvalidGuardrailCap(ValidationError):
    code = "INVALID_GUARDRAIL_CAP"
    default_message = "Guardrail caps must be positive"


class InvalidRuleValue(ValidationError):
    code = "INVALID_RULE_VALUE"
    default_message = "Invalid discount rule"


class InvalidSchedule(ValidationError):
    code = "INVALID_SCHEDULE"
    default_message = "expires_at must be greater than starts_at"


class DivisionByZero(ValidationError):
    code = "DIVISION_BY_ZERO"
    default_message = "Division by zero"


# Cross-reference


class CrossReferenceError(MarketError):
    category = "cross_reference"
    status_code = 404


class ShopNotFound(CrossReferenceError):
    code = "SHOP_NOT_FOUND"
    default_message = "Shop not found"


class ListingNotFound(CrossReferenceError):
    code = "LISTING_NOT_FOUND"
    default_message = "Listing not found"


class CurrencyNotFound(CrossReferenceError):
    code = "CURRENCY_NOT_FOUND"
    default_message = "Currency is not accepted by this shop"


class TemplateNotFound(CrossReferenceError):
    code = "TEMPLATE_NOT_FOUND"
    default_message = "Discount template not found"


class TicketNotFound(CrossReferenceError):
    code = "TICKET_NOT_FOUND"
    default_message = "Discount ticket not found"


class ReceiptNotFound(CrossReferenceError):
    code = "RECEIPT_NOT_FOUND"
    default_message = "Receipt not found"


class CrossReferenceMismatch(CrossReferenceError):
    code = "CROSS_REFERENCE_MISMATCH"
    status_code = 409
    default_message = "Record belongs to a different shop or listing"


class ItemTypeMismatch(CrossReferenceError):
    code = "ITEM_TYPE_MISMATCH"
    status_code = 409
    default_message = "Listing item type does not match the requested item type"


# Shop state and registry conflicts


class ShopStateError(MarketError):
    category = "shop_state"
    status_code = 409


class ShopDisabled(ShopStateError):
    code = "SHOP_DISABLED"
    default_message = "Shop is disabled"


class CurrencyAlreadyRegistered(ShopStateError):
    code = "CURRENCY_ALREADY_REGISTERED"
    default_message = "Currency is already accepted by this shop"


# Inventory


class InventoryError(MarketError):
    category = "inventory"
    status_code = 409


class ZeroStock(InventoryError):
    code = "ZERO_STOCK"
    status_code = 422
    default_message = "Listings must start with stock above zero"


class OutOfStock(InventoryError):
    code = "OUT_OF_STOCK"
    default_message = "Listing is out of stock"


# Discount lifecycle


class DiscountError(MarketError):
    category = "discount"
    status_code = 409


class TemplateInactive(DiscountError):
    code = "TEMPLATE_INACTIVE"
    default_message = "Discount template is disabled"


class TemplateTooEarly(DiscountError):
    code = "TEMPLATE_TOO_EARLY"
    default_message = "Discount template has not started"


class TemplateExpired(DiscountError):
    code = "TEMPLATE_EXPIRED"
    default_message = "Discount template has expired"


class TemplateMaxedOut(DiscountError):
    code = "TEMPLATE_MAXED_OUT"
    default_message = "Discount template reached its redemption cap"


class AlreadyClaimed(DiscountError):
    code = "ALREADY_CLAIMED"
    default_message = "Address already claimed this discount"


class TemplateFinalized(DiscountError):
    code = "TEMPLATE_FINALIZED"
    default_message = "Discount template can no longer be edited"


class ClaimsNotPrunable(DiscountError):
    code = "CLAIMS_NOT_PRUNABLE"
    default_message = "Claims can only be pruned once the template is finished or disabled"


class ListingHasActiveTemplates(DiscountError):
    code = "LISTING_HAS_ACTIVE_TEMPLATES"
    default_message = "Active discount templates still target this listing"


class DiscountMismatch(DiscountError):
    code = "DISCOUNT_MISMATCH"
    default_message = "Discount ticket does not apply to this purchase"


class DiscountTemplateMismatch(DiscountMismatch):
    code = "DISCOUNT_TEMPLATE_MISMATCH"
    default_message = "Ticket was issued by a different template"


class DiscountShopMismatch(DiscountMismatch):
    code = "DISCOUNT_SHOP_MISMATCH"
    default_message = "Ticket was issued by a different shop"


class DiscountClaimerMismatch(DiscountMismatch):
    code = "DISCOUNT_CLAIMER_MISMATCH"
    default_message = "Only the claimer can redeem this ticket"


class DiscountListingMismatch(DiscountMismatch):
    code = "DISCOUNT_LISTING_MISMATCH"
    default_message = "Discount is scoped to a different listing"


# Oracle / price


class OracleError(MarketError):
    category = "oracle"
    status_code = 422


class OracleObjectMismatch(OracleError):
    code = "ORACLE_OBJECT_MISMATCH"
    default_message = "Price object is not the one registered for this currency"


class FeedIdentifierMismatch(OracleError):
    code = "FEED_IDENTIFIER_MISMATCH"
    default_message = "Price object carries a different feed id"


class PriceNonPositive(OracleError):
    code = "PRICE_NON_POSITIVE"
    default_message = "Oracle price must be positive"


class ConfidenceExceedsPrice(OracleError):
    code = "CONFIDENCE_EXCEEDS_PRICE"
    default_message = "Oracle confidence must be smaller than the price"


class ConfidenceIntervalTooWide(OracleError):
    code = "CONFIDENCE_INTERVAL_TOO_WIDE"
    default_message = "Oracle confidence interval exceeds the allowed ratio"


class PriceTooStale(OracleError):
    code = "PRICE_TOO_STALE"
    default_message = "Oracle price is older than the allowed age"


class PriceStatusNotTrading(OracleError):
    code = "PRICE_STATUS_NOT_TRADING"
    default_message = "Oracle attestation lags the publish time"


class Overflow(OracleError):
    code = "OVERFLOW"
    default_message = "Arithmetic overflow"


# Payment


class InsufficientPayment(MarketError):
    code = "INSUFFICIENT_PAYMENT"
    category = "payment"
    status_code = 402
    default_message = "Payment does not cover the quoted amount"
