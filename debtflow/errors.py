class DebtFlowError(Exception):
    """Base class for errors raised by record and user operations."""


class RecordNotFoundError(DebtFlowError, LookupError):
    pass


class DuplicateInvoiceError(DebtFlowError):
    def __init__(self, customer_code: str, invoice_number: str):
        super().__init__(f"Invoice {invoice_number} already exists for customer {customer_code} in this period")
        self.customer_code = customer_code
        self.invoice_number = invoice_number


class EmailInUseError(DebtFlowError):
    def __init__(self, email: str):
        super().__init__("This email address is already in use.")
        self.email = email


class PermissionDeniedError(DebtFlowError, PermissionError):
    pass
