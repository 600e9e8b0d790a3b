from dependency_injector import containers, providers

from noobwriter.config import Settings
from noobwriter.services.purchase_service import PurchaseService
from noobwriter.services.tip_service import TipService
from noobwriter.services.unlock_service import UnlockService
from noobwriter.services.wallet_service import WalletService
from noobwriter.services.withdrawal_service import ExchangeService, PayoutService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies.

    Services are factories over a request-scoped session: routers resolve the
    provider and call it with the session from `Depends(get_db)`.
    """

    config = providers.DependenciesContainer()

    wallet_service = providers.Factory(WalletService, settings=config.config)
    tip_service = providers.Factory(TipService, settings=config.config)
    unlock_service = providers.Factory(UnlockService, settings=config.config)
    payout_service = providers.Factory(PayoutService, settings=config.config)
    exchange_service = providers.Factory(ExchangeService, settings=config.config)
    purchase_service = providers.Factory(PurchaseService, settings=config.config)


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "noobwriter.routers.wallet_router",
            "noobwriter.routers.tip_router",
            "noobwriter.routers.unlock_router",
            "noobwriter.routers.payout_router",
            "noobwriter.routers.exchange_router",
            "noobwriter.routers.purchase_router",
            "noobwriter.routers.admin_router",
        ],
    )

    config = providers.Container(ConfigModule)
    services = providers.Container(ServiceModule, config=config)
