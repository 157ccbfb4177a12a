# src/execution/client_registry.py
"""Per-account cache of Alpaca client bindings."""
import logging
import threading

from src.execution.alpaca_client import AlpacaClient
from src.execution.errors import BrokerNotConfiguredError
from src.execution.models import BrokerAccount

logger = logging.getLogger(__name__)


class AlpacaClientRegistry:
    """Lazily builds and caches one AlpacaClient per account id.

    A cached client is reused until the account's key, secret, base URL or
    paper flag change, at which point it is rebuilt. Lookups of an
    up-to-date binding take no lock; rebuilds are serialized.
    """

    def __init__(self, request_timeout: float = 30.0) -> None:
        self._request_timeout = request_timeout
        self._bindings: dict[str, tuple[tuple, AlpacaClient]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._bindings)

    def __contains__(self, account_id: str) -> bool:
        return account_id in self._bindings

    def get_client(self, account: BrokerAccount) -> AlpacaClient:
        """Return the client bound to this account's current credentials.

        Raises:
            BrokerNotConfiguredError: If the account has no key or secret.
        """
        if not account.has_credentials:
            raise BrokerNotConfiguredError(account.id)

        fingerprint = account.credential_fingerprint
        binding = self._bindings.get(account.id)
        if binding is not None and binding[0] == fingerprint:
            return binding[1]

        with self._lock:
            binding = self._bindings.get(account.id)
            if binding is not None and binding[0] == fingerprint:
                return binding[1]

            client = self._build_client(account)
            if binding is not None:
                logger.info(f"CLIENT_REBUILD account={account.account_name} reason=credentials_changed")
            self._bindings[account.id] = (fingerprint, client)
            return client

    def _build_client(self, account: BrokerAccount) -> AlpacaClient:
        client = AlpacaClient(
            api_key=account.api_key,
            secret_key=account.secret_key,
            paper=account.is_paper,
            base_url=account.base_url,
            request_timeout=self._request_timeout,
        )
        client.connect()
        logger.debug(f"CLIENT_BUILT account={account.account_name} base_url={client.base_url}")
        return client
