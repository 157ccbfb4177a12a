# src/hotkeys/client_order_ids.py
"""Session and client order ID generation."""
import time
import uuid

# Alpaca rejects client order IDs longer than this.
MAX_CLIENT_ORDER_ID_LENGTH = 128


def new_session_id(length: int = 8) -> str:
    """Short random token identifying one dispatch, for log correlation."""
    return uuid.uuid4().hex[:length]


class ClientOrderIdGenerator:
    """Builds client order IDs for every account in one dispatch.

    Format: ``{prefix}-{session}-{account}-{side initial}-{base_ms + index}``.
    The account index is added to one shared base timestamp, so IDs in a
    dispatch stay distinct even when accounts share an ID prefix or the
    clock does not move between submissions.
    """

    ACCOUNT_ID_CHARS = 16

    def __init__(self, session_id: str, prefix: str = "hk", base_ms: int | None = None):
        self.session_id = session_id
        self.prefix = prefix
        self.base_ms = int(time.time() * 1000) if base_ms is None else base_ms

    def build(self, account_id: str, side: str, index: int) -> str:
        account_part = "".join(c for c in account_id if c.isalnum())[: self.ACCOUNT_ID_CHARS]
        client_order_id = (
            f"{self.prefix}-{self.session_id}-{account_part or 'acct'}"
            f"-{side[:1]}-{self.base_ms + index}"
        )
        return client_order_id[:MAX_CLIENT_ORDER_ID_LENGTH]
