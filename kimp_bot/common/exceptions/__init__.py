from kimp_bot.common.exceptions.base import (
    GENERIC_FAILURE_MESSAGE,
    AccountNotFound,
    AlreadyActive,
    CommandValidationError,
    ConcurrentModification,
    InvalidTransition,
    MissingRate,
    NotActive,
    RecordNotFound,
    SettlementBotError,
    UnknownCommand,
    UpstreamUnavailable,
)

__all__ = [
    "GENERIC_FAILURE_MESSAGE",
    "AccountNotFound",
    "AlreadyActive",
    "CommandValidationError",
    "ConcurrentModification",
    "InvalidTransition",
    "MissingRate",
    "NotActive",
    "RecordNotFound",
    "SettlementBotError",
    "UnknownCommand",
    "UpstreamUnavailable",
]
