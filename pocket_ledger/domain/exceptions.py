"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class NotFoundError(DomainException):
    """Operation on an unknown card, investment or transaction id"""

    pass


class InsufficientLimitError(DomainException):
    """Purchase exceeds the card's available credit"""

    def __init__(self, card_id: str, amount_cents: int, available_limit_cents: int):
        super().__init__(
            f"Purchase of {amount_cents} cents exceeds available limit "
            f"{available_limit_cents} cents on card {card_id}"
        )
        self.card_id = card_id
        self.amount_cents = amount_cents
        self.available_limit_cents = available_limit_cents


class InsufficientFundsError(DomainException):
    """Withdrawal exceeds the investment's balance"""

    def __init__(self, investment_id: str, amount_cents: int, principal_cents: int):
        super().__init__(
            f"Withdrawal of {amount_cents} cents exceeds balance "
            f"{principal_cents} cents of investment {investment_id}"
        )
        self.investment_id = investment_id
        self.amount_cents = amount_cents
        self.principal_cents = principal_cents


class InvalidAmountError(DomainException):
    """Amount is zero or negative"""

    pass


class InvalidMonthError(DomainException):
    """Month key is not a zero-padded YYYY-MM string"""

    pass


class InvalidCardConfigurationError(DomainException):
    """Card settings would break billing (self/cyclic payer, bad days, payer still referenced)"""

    pass


class RepositoryError(DomainException):
    """Storage I/O failed; the current unit of work was rolled back"""

    pass
