from enum import Enum


class Category(str, Enum):
    REVENUE = "REVENUE"
    REFUND = "REFUND"
    RISK = "RISK"
    STATUS = "STATUS"


class Environment(str, Enum):
    SANDBOX = "Sandbox"
    PRODUCTION = "Production"


class DispatchOutcome(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


class ResultStatus(str, Enum):
    SUCCESS = "success"
    IGNORED = "ignored"
    ERROR = "error"
