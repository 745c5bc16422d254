# backend/gpadmin/services/errors.py


class SessionError(ValueError):
    """Операция над сессией (тайм-атака/квала) отклонена.

    reason: машинный код, not-found, closed, full, last-session,
    invalid-time, invalid-duration, invalid-capacity, not-eligible.
    """

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason)


class RaffleError(ValueError):
    """Операция над розыгрышем отклонена.

    reason: not-found, already-drawn, no-participants, invalid-title.
    """

    def __init__(self, reason: str, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason)
