"""
Registrar client - composition root for a registration session.

Wires settings to the connection selector, wallet session,
registration workflow and status projector. Adapters are created
here so the domain layer never constructs infrastructure itself.
"""

import logging

from registrar.adapters.reporting import HttpRegistrationReporter
from registrar.adapters.resolver import SnsProxyResolver
from registrar.adapters.rpc import rpc_client_factory
from registrar.adapters.wallet import KeypairWallet
from registrar.config.settings import Settings, get_settings
from registrar.domain.endpoints import ConnectionSelector, EndpointHealth
from registrar.domain.exceptions import AttemptInProgress
from registrar.domain.ports import NameResolver, Network, RpcClientFactory, WalletProvider
from registrar.domain.registration import AvailabilityReport, RegistrationAttempt, RegistrationWorkflow
from registrar.domain.status import StatusProjector
from registrar.domain.wallet import WalletSession

logger = logging.getLogger(__name__)


class Registrar:
    """
    One user's registration session.

    Holds a single selector, session and workflow so every operation
    shares the same RPC client and wallet connection.
    """

    def __init__(
        self,
        settings: Settings,
        client_factory: RpcClientFactory,
        resolver: NameResolver,
        provider: WalletProvider | None = None,
        projector: StatusProjector | None = None,
        reporter: HttpRegistrationReporter | None = None,
    ) -> None:
        self.settings = settings
        self.resolver = resolver
        self.reporter = reporter
        self.selector = ConnectionSelector(client_factory, probe_timeout=settings.probe_timeout_seconds)
        self.session = WalletSession(
            provider=provider,
            selector=self.selector,
            network=settings.network,
            commitment=settings.commitment,
            signing_timeout=settings.signing_timeout_seconds,
            balance_attempts=settings.balance_retry_attempts,
            balance_retry_delay=settings.balance_retry_delay_seconds,
        )
        self.workflow = RegistrationWorkflow(
            session=self.session,
            resolver=resolver,
            treasury_address=settings.treasury_address,
            commitment=settings.commitment,
            explorer_url=settings.explorer_url,
        )
        self.projector = projector or StatusProjector(dismiss_after=settings.notice_dismiss_seconds)
        self.workflow.subscribe(self.projector)
        if reporter is not None:
            self.workflow.subscribe(reporter)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Registrar":
        """Build a registrar with the HTTP, SNS proxy and keypair adapters."""
        settings = settings or get_settings()
        provider = KeypairWallet.from_file(settings.keypair_path) if settings.keypair_path else None
        reporter = HttpRegistrationReporter(settings.ledger_url) if settings.ledger_url else None
        return cls(
            settings=settings,
            client_factory=rpc_client_factory(
                timeout=settings.rpc_timeout_seconds,
                confirmation_timeout=settings.confirmation_timeout_seconds,
                poll_interval=settings.confirmation_poll_seconds,
            ),
            resolver=SnsProxyResolver(settings.resolver_url, timeout=settings.rpc_timeout_seconds),
            provider=provider,
            reporter=reporter,
        )

    @property
    def network(self) -> Network:
        return self.session.network

    async def start(self) -> str:
        """Select an endpoint for the configured network; returns it."""
        return await self._select(self.session.network)

    async def switch_network(self, network: Network) -> str | None:
        """
        Move the session to another network.

        Returns:
            The newly selected endpoint, or None if already on network

        Raises:
            AttemptInProgress: If a registration attempt is running
            NoReachableEndpoint: If no endpoint of network answered
        """
        self._refuse_during_attempt("switch network")
        if network == self.session.network and self.selector.endpoint is not None:
            logger.info("Already on %s", network.value)
            return None

        endpoint = await self._select(network)
        self.session.network = network
        self.projector.notify(f"Switched to {network.value}")
        return endpoint

    async def connect_wallet(self) -> str:
        self._refuse_during_attempt("connect a wallet")
        return await self.session.connect()

    async def disconnect_wallet(self) -> None:
        self._refuse_during_attempt("disconnect the wallet")
        await self.session.disconnect()

    async def check(self, name: str) -> AvailabilityReport:
        """Availability, quote and (when taken) alternatives for a name."""
        return await self.workflow.check_availability(name.strip(), suggest=True)

    async def register(self, name: str, payment_method: str = "SOL") -> RegistrationAttempt:
        return await self.workflow.register(name.strip(), payment_method)

    async def check_health(self) -> EndpointHealth:
        return await self.selector.check_health()

    async def close(self) -> None:
        """Disconnect the wallet and release HTTP clients."""
        await self.session.disconnect()
        await self.selector.close()
        if isinstance(self.resolver, SnsProxyResolver):
            await self.resolver.aclose()
        if self.reporter is not None:
            await self.reporter.aclose()

    def _refuse_during_attempt(self, action: str) -> None:
        if self.workflow.in_progress:
            raise AttemptInProgress(f"Cannot {action} while a registration is in progress")

    async def _select(self, network: Network) -> str:
        return await self.selector.select_endpoint(
            self.settings.rpc_endpoints(network),
            per_candidate_timeout=self.settings.probe_timeout_seconds,
            network=network,
        )
