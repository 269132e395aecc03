from __future__ import annotations


class LotteryError(RuntimeError):
    """Base for every failure that aborts a lottery transaction."""

    code = 1

    @property
    def name(self) -> str:
        return type(self).__name__


# Program errors


class WinnerAlreadyExists(LotteryError):
    code = 6000


class NoTickets(LotteryError):
    code = 6001


class WinnerNotChosen(LotteryError):
    code = 6002


class InvalidWinner(LotteryError):
    code = 6003


class AlreadyClaimed(LotteryError):
    code = 6004


# Runtime / account constraint errors


class Unauthorized(LotteryError):
    code = 2001


class AccountDiscriminatorMismatch(LotteryError):
    code = 3002


class AccountNotInitialized(LotteryError):
    code = 3012


class AccountAlreadyInUse(LotteryError):
    code = 3013


class InsufficientFunds(LotteryError):
    code = 3100


class ArithmeticOverflow(LotteryError):
    code = 3101
