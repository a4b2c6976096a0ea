from enum import Enum


class ErrorKind(Enum):
    CURVE_COMPLETE = "curve_complete"
    ACCOUNT_NOT_FOUND = "account_not_found"
    ARITHMETIC = "arithmetic"
    DECODE = "decode"
    SUBMISSION_REJECTED = "submission_rejected"
    SUBMISSION_TIMEOUT = "submission_timeout"
    TRANSPORT = "transport"


class PumpFunError(Exception):
    kind: ErrorKind | None = None


class CurveCompleteError(PumpFunError):
    kind = ErrorKind.CURVE_COMPLETE

    def __init__(self, message: str = "Curve is complete") -> None:
        super().__init__(message)


class AccountNotFoundError(PumpFunError):
    kind = ErrorKind.ACCOUNT_NOT_FOUND


class CurveArithmeticError(PumpFunError, ArithmeticError):
    kind = ErrorKind.ARITHMETIC


class AccountDecodeError(PumpFunError, ValueError):
    kind = ErrorKind.DECODE


class SubmissionError(PumpFunError):
    pass


class SubmissionRejectedError(SubmissionError):
    kind = ErrorKind.SUBMISSION_REJECTED


class SubmissionTimeoutError(SubmissionError):
    kind = ErrorKind.SUBMISSION_TIMEOUT


class TransportError(SubmissionError):
    kind = ErrorKind.TRANSPORT


class RetryExhaustedError(SubmissionError):
    """Bounded retry policy ran out of attempts. Carries the last result."""

    def __init__(self, attempts: int, last_result: object | None = None) -> None:
        super().__init__(f"Gave up after {attempts} attempts")
        self.attempts = attempts
        self.last_result = last_result
        self.kind = getattr(last_result, "error", None)


class RetryCancelledError(SubmissionError):
    """The caller's cancel signal stopped the retry loop."""
