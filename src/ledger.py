import logging
import threading
from typing import Dict, List, Optional, Tuple

from models import Transaction, TransactionType, ClientAccount, AccountSnapshot, ProcessingResult
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)


class Ledger:
    """
    Owns one ClientAccount per client and routes transactions to them.

    Accounts are created lazily, and only by a deposit. Any other transaction
    for an unknown client is a no-op reported as "no such account".
    """

    def __init__(self, freeze_locked_accounts: bool = False):
        self._accounts: Dict[int, ClientAccount] = {}
        self._processor = TransactionProcessor(freeze_locked_accounts=freeze_locked_accounts)

        # Guards insertion into and iteration over _accounts when consumers
        # run on several threads. Each account itself is only ever touched by
        # the consumer its client is routed to.
        self._global_lock = threading.Lock()

    def process(self, transaction: Transaction) -> Optional[AccountSnapshot]:
        """
        Apply ``transaction`` to its client's account.

        Returns the account's snapshot after the transaction, whether it was
        applied or ignored, or None if the client has no account and the
        transaction is not a deposit.
        """
        _, snapshot = self.apply(transaction)
        return snapshot

    def apply(self, transaction: Transaction) -> Tuple[ProcessingResult, Optional[AccountSnapshot]]:
        """Like ``process`` but returns ``(ProcessingResult, Optional[AccountSnapshot])``."""
        if transaction.transaction_type == TransactionType.DEPOSIT:
            account = self._get_or_create_account(transaction.client_id)
        else:
            account = self._get_account(transaction.client_id)

        if account is None:
            logger.debug(f"{transaction}: no such account")
            return ProcessingResult.UNKNOWN_ACCOUNT, None

        result = self._processor.process_transaction(account, transaction)
        return result, account.snapshot()

    def get_account_snapshot(self, client_id: int) -> Optional[AccountSnapshot]:
        account = self._get_account(client_id)
        return account.snapshot() if account is not None else None

    def snapshot_all(self) -> List[AccountSnapshot]:
        """Return immutable copies of all accounts, ordered by client id."""
        with self._global_lock:
            accounts = sorted(self._accounts.values(), key=lambda account: account.client_id)
            return [account.snapshot() for account in accounts]

    def __contains__(self, client_id: int) -> bool:
        with self._global_lock:
            return client_id in self._accounts

    def __len__(self) -> int:
        with self._global_lock:
            return len(self._accounts)

    def _get_account(self, client_id: int) -> Optional[ClientAccount]:
        with self._global_lock:
            return self._accounts.get(client_id)

    def _get_or_create_account(self, client_id: int) -> ClientAccount:
        with self._global_lock:
            if client_id not in self._accounts:
                logger.debug(f"Creating account for client {client_id}")
                self._accounts[client_id] = ClientAccount(client_id=client_id)
            return self._accounts[client_id]
