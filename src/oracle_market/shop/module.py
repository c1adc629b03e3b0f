"""One object = full bounded context «market»."""
from oracle_market.ddd import DomainModule
from oracle_market.shop.application import (
    AddCurrency,
    AddCurrencyHandler,
    AddListing,
    AddListingHandler,
    AttachSpotlight,
    AttachSpotlightHandler,
    BuyItem,
    BuyItemHandler,
    BuyItemWithDiscount,
    BuyItemWithDiscountHandler,
    ClaimAndBuyItemWithDiscount,
    ClaimAndBuyItemWithDiscountHandler,
    ClaimDiscountTicket,
    ClaimDiscountTicketHandler,
    ClearSpotlight,
    ClearSpotlightHandler,
    CreateDiscountTemplate,
    CreateDiscountTemplateHandler,
    CreateShop,
    CreateShopHandler,
    DisableShop,
    DisableShopHandler,
    GetDiscountTemplate,
    GetDiscountTemplateHandler,
    GetDiscountTicket,
    GetDiscountTicketHandler,
    GetListing,
    GetListingHandler,
    GetReceipt,
    GetReceiptHandler,
    GetShop,
    GetShopHandler,
    GetShopSales,
    GetShopSalesHandler,
    ListCurrencies,
    ListCurrenciesHandler,
    ListDiscountTemplates,
    ListDiscountTemplatesHandler,
    ListDiscountTickets,
    ListDiscountTicketsHandler,
    ListListings,
    ListListingsHandler,
    ListReceipts,
    ListReceiptsHandler,
    PreviewQuote,
    PreviewQuoteHandler,
    PruneDiscountClaims,
    PruneDiscountClaimsHandler,
    RemoveCurrency,
    RemoveCurrencyHandler,
    RemoveListing,
    RemoveListingHandler,
    SetListingStock,
    SetListingStockHandler,
    ToggleDiscountTemplate,
    ToggleDiscountTemplateHandler,
    UpdateDiscountTemplate,
    UpdateDiscountTemplateHandler,
    UpdateListing,
    UpdateListingHandler,
    UpdateShopOwner,
    UpdateShopOwnerHandler,
)
from oracle_market.shop.auth import AuthorizationModel
from oracle_market.shop.catalog import CatalogStore
from oracle_market.shop.checkout import CheckoutCoordinator
from oracle_market.shop.clock import Clock, SystemClock
from oracle_market.shop.currency import CurrencyRegistry
from oracle_market.shop.discounts import DiscountEngine
from oracle_market.shop.events import PurchaseCompleted
from oracle_market.shop.locks import RecordLocks
from oracle_market.shop.pricing import PriceQuoteEngine
from oracle_market.shop.repositories import (
    ICurrencyRepository,
    IDiscountTemplateRepository,
    IDiscountTicketRepository,
    IListingRepository,
    InMemoryCurrencyRepository,
    InMemoryDiscountTemplateRepository,
    InMemoryDiscountTicketRepository,
    InMemoryListingRepository,
    InMemoryPayoutLedger,
    InMemoryReceiptRepository,
    InMemoryShopRepository,
    IPayoutLedger,
    IReceiptRepository,
    IShopRepository,
)
from oracle_market.shop.sales import SalesIndex
from oracle_market.shop.shops import ShopDirectory

market_module = (
    DomainModule("market")
    .repository(IShopRepository, InMemoryShopRepository)
    .repository(IListingRepository, InMemoryListingRepository)
    .repository(ICurrencyRepository, InMemoryCurrencyRepository)
    .repository(IDiscountTemplateRepository, InMemoryDiscountTemplateRepository)
    .repository(IDiscountTicketRepository, InMemoryDiscountTicketRepository)
    .repository(IReceiptRepository, InMemoryReceiptRepository)
    .bind(IPayoutLedger, InMemoryPayoutLedger)
    .bind(Clock, SystemClock)
    .service(AuthorizationModel)
    .service(RecordLocks)
    .service(PriceQuoteEngine)
    .service(ShopDirectory)
    .service(CatalogStore)
    .service(CurrencyRegistry)
    .service(DiscountEngine)
    .service(CheckoutCoordinator)
    .service(SalesIndex)
    .on_event(PurchaseCompleted, SalesIndex)
    # shops
    .command(CreateShop, CreateShopHandler)
    .command(UpdateShopOwner, UpdateShopOwnerHandler)
    .command(DisableShop, DisableShopHandler)
    .query(GetShop, GetShopHandler)
    # listings
    .command(AddListing, AddListingHandler)
    .command(UpdateListing, UpdateListingHandler)
    .command(SetListingStock, SetListingStockHandler)
    .command(RemoveListing, RemoveListingHandler)
    .command(AttachSpotlight, AttachSpotlightHandler)
    .command(ClearSpotlight, ClearSpotlightHandler)
    .query(ListListings, ListListingsHandler)
    .query(GetListing, GetListingHandler)
    # currencies
    .command(AddCurrency, AddCurrencyHandler)
    .command(RemoveCurrency, RemoveCurrencyHandler)
    .query(ListCurrencies, ListCurrenciesHandler)
    # discounts
    .command(CreateDiscountTemplate, CreateDiscountTemplateHandler)
    .command(UpdateDiscountTemplate, UpdateDiscountTemplateHandler)
    .command(ToggleDiscountTemplate, ToggleDiscountTemplateHandler)
    .command(PruneDiscountClaims, PruneDiscountClaimsHandler)
    .command(ClaimDiscountTicket, ClaimDiscountTicketHandler)
    .query(GetDiscountTemplate, GetDiscountTemplateHandler)
    .query(ListDiscountTemplates, ListDiscountTemplatesHandler)
    .query(GetDiscountTicket, GetDiscountTicketHandler)
    .query(ListDiscountTickets, ListDiscountTicketsHandler)
    # checkout
    .command(BuyItem, BuyItemHandler)
    .command(BuyItemWithDiscount, BuyItemWithDiscountHandler)
    .command(ClaimAndBuyItemWithDiscount, ClaimAndBuyItemWithDiscountHandler)
    .query(PreviewQuote, PreviewQuoteHandler)
    .query(GetReceipt, GetReceiptHandler)
    .query(ListReceipts, ListReceiptsHandler)
    # sales
    .query(GetShopSales, GetShopSalesHandler)
)
