"""
Engine wiring.

Builds every component from a ``WolfgiftConfig`` and owns their lifecycle:

    engine = Engine.from_config(load_config())
    async with engine:
        player = await engine.orchestrator.lookup_player("someone")
        receipt = await engine.orchestrator.purchase(
            ItemPurchase(recipient_id=player["id"], item_type="ROSE_V2"), user_id="42"
        )
"""

from pathlib import Path
from types import TracebackType

from wolfgift.accounts.store import MAIN_ACCOUNT, AccountStore
from wolfgift.auth.captcha import CaptchaSolver
from wolfgift.auth.credentials import CredentialManager, RefreshScheduler
from wolfgift.auth.identity import IdentityClient
from wolfgift.commerce.catalog import Catalog
from wolfgift.commerce.client import CommerceClient
from wolfgift.commerce.orchestrator import PurchaseOrchestrator
from wolfgift.core.config import WolfgiftConfig
from wolfgift.core.logging import get_logger
from wolfgift.core.types import Account, TokenSet
from wolfgift.ledger.ledger import Ledger
from wolfgift.storage import JSONStore, StateSink

logger = get_logger("wolfgift.engine")


class Engine:
    """All components of one running instance."""

    def __init__(
        self,
        config: WolfgiftConfig,
        sink: StateSink,
        store: AccountStore,
        ledger: Ledger,
        catalog: Catalog,
        solver: CaptchaSolver,
        identity: IdentityClient,
        credentials: CredentialManager,
        client: CommerceClient,
        orchestrator: PurchaseOrchestrator,
        scheduler: RefreshScheduler,
    ) -> None:
        self.config = config
        self.sink = sink
        self.store = store
        self.ledger = ledger
        self.catalog = catalog
        self.solver = solver
        self.identity = identity
        self.credentials = credentials
        self.client = client
        self.orchestrator = orchestrator
        self.scheduler = scheduler

    @classmethod
    def from_config(cls, config: WolfgiftConfig, sink: StateSink | None = None) -> "Engine":
        """Build and load every component; no network call happens here."""
        sink = sink or JSONStore(Path(config.storage.data_dir))
        timeout = config.http.timeout_seconds

        main = config.main_account
        store = AccountStore(
            sink,
            seed=Account(
                name=MAIN_ACCOUNT,
                email=main.email,
                password=main.password,
                tokens=TokenSet(main.id_token, main.refresh_token, main.cf_jwt),
            ),
        )
        store.load()

        ledger = Ledger(sink)
        ledger.load()
        catalog = Catalog.from_sink(sink)

        solver = CaptchaSolver(
            api_key=config.captcha.api_key,
            base_url=config.captcha.base_url,
            method=config.captcha.method,
            poll_interval=config.captcha.poll_interval_seconds,
            max_attempts=config.captcha.max_attempts,
            timeout=timeout,
        )
        identity = IdentityClient(solver, config.identity, timeout=timeout)
        credentials = CredentialManager(
            store,
            identity,
            env_file=config.storage.env_file if config.storage.mirror_tokens_to_env else None,
            margin_seconds=config.refresh.expiry_margin_seconds,
        )
        client = CommerceClient(config.commerce.core_base_url, timeout=timeout)
        orchestrator = PurchaseOrchestrator(
            store,
            credentials,
            client,
            ledger,
            catalog,
            default_message=config.commerce.default_gift_message,
            calendar_item_type=config.commerce.calendar_item_type,
        )
        scheduler = RefreshScheduler(
            credentials,
            startup_delay=config.refresh.startup_delay_seconds,
            interval=config.refresh.interval_seconds,
        )

        logger.info(
            "engine_built",
            data_dir=config.storage.data_dir,
            accounts=len(store),
            current=store.current_name,
        )
        return cls(
            config=config,
            sink=sink,
            store=store,
            ledger=ledger,
            catalog=catalog,
            solver=solver,
            identity=identity,
            credentials=credentials,
            client=client,
            orchestrator=orchestrator,
            scheduler=scheduler,
        )

    def start(self) -> None:
        """Start the background refresh schedule (needs a running loop)."""
        self.scheduler.start()

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.client.close()
        await self.identity.close()
        logger.info("engine_closed")

    async def __aenter__(self) -> "Engine":
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()


__all__ = ["Engine"]
