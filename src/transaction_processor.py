import logging

from models import Transaction, TransactionType, ClientAccount, ProcessingResult

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions to a single client account.
    Returns ProcessingResult to indicate whether the account changed.
    Caller is responsible for routing the transaction to the right account
    and, in parallel mode, for serializing access to it.
    """

    def __init__(self, freeze_locked_accounts: bool = False):
        self._freeze_locked_accounts = freeze_locked_accounts

    def process_transaction(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        """
        Apply a single transaction to ``account``.

        Returns:
            APPLIED: The account was mutated
            IGNORED: The transaction was a no-op (duplicate id, insufficient funds,
                     unknown or wrongly-staged referenced transaction, ...)
        """
        if self._freeze_locked_accounts and account.locked:
            logger.info(f"{transaction}: account {account.client_id} is locked, skipping")
            return ProcessingResult.IGNORED

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                result = self._handle_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                result = self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE:
                result = self._handle_dispute(account, transaction)
            case TransactionType.RESOLVE:
                result = self._handle_resolve(account, transaction)
            case TransactionType.CHARGEBACK:
                result = self._handle_chargeback(account, transaction)
            case _:
                raise ValueError(f"unsupported transaction type {transaction.transaction_type!r}")

        if result == ProcessingResult.APPLIED:
            account.check_invariants()
        return result

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if transaction.amount < 0:
            logger.warning(f"Deposit tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return ProcessingResult.IGNORED

        if account.has_record(transaction.transaction_id):
            logger.info(f"Deposit tx {transaction.transaction_id}: already processed, skipping (idempotent)")
            return ProcessingResult.IGNORED

        account.credit(transaction.amount)
        account.store_record(transaction.transaction_id, transaction.amount)
        return ProcessingResult.APPLIED

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if transaction.amount < 0:
            logger.warning(f"Withdrawal tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return ProcessingResult.IGNORED

        if account.has_record(transaction.transaction_id):
            logger.info(f"Withdrawal tx {transaction.transaction_id}: already processed, skipping (idempotent)")
            return ProcessingResult.IGNORED

        # A rejected withdrawal leaves its id free for a later transaction.
        if account.available - transaction.amount < 0:
            logger.debug(
                f"Withdrawal tx {transaction.transaction_id}: insufficient funds "
                f"(available {account.available}, requested {transaction.amount})"
            )
            return ProcessingResult.IGNORED

        account.debit(transaction.amount)
        account.store_record(transaction.transaction_id, transaction.amount)
        return ProcessingResult.APPLIED

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        record = account.get_record(transaction.transaction_id)

        if record is None:
            logger.debug(f"Dispute for tx {transaction.transaction_id}: no such transaction for client {account.client_id}")
            return ProcessingResult.IGNORED

        if record.disputed:
            logger.debug(f"Dispute for tx {transaction.transaction_id}: transaction already disputed")
            return ProcessingResult.IGNORED

        account.hold(record.amount)
        record.disputed = True
        return ProcessingResult.APPLIED

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        record = account.get_record(transaction.transaction_id)

        if record is None or not record.under_dispute:
            logger.debug(f"Resolve for tx {transaction.transaction_id}: transaction is not under dispute")
            return ProcessingResult.IGNORED

        account.release_hold(record.amount)
        record.disputed = False
        return ProcessingResult.APPLIED

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        record = account.get_record(transaction.transaction_id)

        if record is None or not record.under_dispute:
            logger.debug(f"Chargeback for tx {transaction.transaction_id}: transaction is not under dispute")
            return ProcessingResult.IGNORED

        # The record stays flagged as disputed; charged_back makes it terminal.
        account.remove_held(record.amount)
        record.charged_back = True
        account.lock()
        return ProcessingResult.APPLIED
