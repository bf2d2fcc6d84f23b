"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInput(DomainException):
    """Malformed date or duration, or an update key outside the allowed field set"""

    pass


class NotFoundError(DomainException):
    """Referenced record does not exist"""

    pass


class ClientNotFound(NotFoundError):
    """Client id does not resolve to a contract record"""

    def __init__(self, client_id: int):
        super().__init__(f"Client {client_id} not found")
        self.client_id = client_id


class RenewalNotFound(NotFoundError):
    """Renewal id does not resolve (or does not belong to the given client)"""

    def __init__(self, renewal_id: int):
        super().__init__(f"Renewal {renewal_id} not found")
        self.renewal_id = renewal_id


class PlanNotFound(NotFoundError):
    """Payment plan id does not resolve"""

    def __init__(self, plan_id: int):
        super().__init__(f"Payment plan {plan_id} not found")
        self.plan_id = plan_id


class InstallmentNotFound(NotFoundError):
    """Installment id does not resolve under the given plan"""

    def __init__(self, plan_id: int, installment_id: int):
        super().__init__(f"Installment {installment_id} not found in plan {plan_id}")
        self.plan_id = plan_id
        self.installment_id = installment_id


class DuplicateRenewal(DomainException):
    """A renewal already exists for this client on the same calendar day"""

    def __init__(self, client_id: int, renewal_date):
        super().__init__(f"Client {client_id} already has a renewal on {renewal_date}")
        self.client_id = client_id
        self.renewal_date = renewal_date


class NoFieldsToUpdate(DomainException):
    """Update request carried no recognized mutable field"""

    pass


class DocumentStorageError(DomainException):
    """Blob store rejected or failed an upload/delete"""

    pass


class PaymentNotFound(NotFoundError):
    """Client payment id does not resolve"""

    def __init__(self, payment_id: int):
        super().__init__(f"Payment {payment_id} not found")
        self.payment_id = payment_id
