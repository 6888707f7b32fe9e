"""
Ledger - per-user wallets with an append-only transaction log.

Every balance change is a Transaction row whose balance_before and
balance_after bracket the change; the Wallet.balance snapshot is kept in
step inside the same database transaction.

Public API:
    Models (payments.ledger.models):
        Wallet - Current balance snapshot per user
        Transaction - Immutable balance change
        TransactionType - Enum of change categories

    Service (payments.ledger.services):
        WalletService - credit, debit, balance, transactions, stats, reconcile

    Types (payments.ledger.types):
        LedgerEntryParams - Parameters for one credit or debit
        ReconciliationReport - Result of reconcile()

    Exceptions (payments.ledger.exceptions):
        LedgerError, InsufficientBalance, InvalidLedgerAmount

Note:
    Models are not imported here to avoid AppRegistryNotReady errors;
    payments.models re-exports them for Django's model discovery.
"""
