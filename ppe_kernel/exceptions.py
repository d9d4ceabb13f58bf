"""
Typed Exception Hierarchy for the PPE Kernel.

Every error the kernel raises is a typed subclass of PpeKernelError with a
machine-readable ``code`` class attribute and structured attributes carrying
the context (category code, counts, identifiers).  Callers catch by type and
read attributes; they never parse messages.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PpeKernelError (base)
    |
    +-- IssuanceError
    |   +-- EmployeeNotLoadedError
    |   +-- NoItemsSelectedError
    |   +-- ValidationFailedError
    |   +-- MasterItemNotSelectedError
    |   +-- InsufficientStockError
    |   +-- CapacityExceededUnresolvableError
    |   +-- ReplacementTargetMissingError
    |   +-- ReplacementTargetInvalidError
    |   +-- PartialCommitFailureError
    |   +-- InvalidSessionTransitionError
    |
    +-- EmployeeError
    |   +-- EmployeeNotFoundError
    |   +-- DuplicateEmployeeError
    |   +-- InvalidEmployeeFieldError
    |
    +-- CatalogError
    |   +-- CategoryNotFoundError
    |   +-- DuplicateCategoryError
    |   +-- CategoryInUseError
    |   +-- MasterItemNotFoundError
    |   +-- DuplicateMasterItemCodeError
    |   +-- InvalidCatalogFieldError
    |
    +-- AssignmentError
    |   +-- AssignmentNotFoundError
    |   +-- AssignmentInactiveError
    |
    +-- StockError
    |   +-- InvalidStockQuantityError
    |
    +-- ConfigurationError
    |   +-- InvalidCapacityValueError
    |
    +-- RepositoryError

===============================================================================
HANDLING PATTERNS
===============================================================================

The issuance engine never lets an IssuanceError or a storage error escape:
both are folded into a REJECTED IssuanceResult whose ``error`` attribute is
the typed exception.  Management services (catalog, employee, assignment
maintenance) raise directly; the caller's session_scope() rolls back.

    result = engine.issue(request)
    if result.status is IssuanceStatus.REJECTED:
        if isinstance(result.error, InsufficientStockError):
            show(result.error.available, result.error.requested)
"""


class PpeKernelError(Exception):
    """
    Base exception for all PPE kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "PPE_KERNEL_ERROR"


# Issuance-related exceptions


class IssuanceError(PpeKernelError):
    """Base exception for issuance decision and commit errors."""

    code: str = "ISSUANCE_ERROR"


class EmployeeNotLoadedError(IssuanceError):
    """No employee is selected for the issuance request."""

    code: str = "EMPLOYEE_NOT_LOADED"

    def __init__(self, employee_code: str | None = None):
        self.employee_code = employee_code
        if employee_code:
            super().__init__(f"Employee not found: {employee_code}")
        else:
            super().__init__("No employee loaded")


class NoItemsSelectedError(IssuanceError):
    """The request carries no items to issue."""

    code: str = "NO_ITEMS_SELECTED"

    def __init__(self):
        super().__init__("No items selected for issuance")


class ValidationFailedError(IssuanceError):
    """
    A required or malformed field on one requested item.

    ``item`` is the 1-based position of the item within its category, or
    None when the failure concerns the whole category (e.g. master item).
    """

    code: str = "VALIDATION_FAILED"

    def __init__(
        self,
        field: str,
        item: int | None = None,
        category_code: str | None = None,
        reason: str = "required",
    ):
        self.field = field
        self.item = item
        self.category_code = category_code
        self.reason = reason
        where = ""
        if category_code:
            where = f" for {category_code}"
            if item is not None:
                where += f" item {item}"
        super().__init__(f"Validation failed on '{field}'{where}: {reason}")


class MasterItemNotSelectedError(IssuanceError):
    """A capacity- or stock-controlled category was requested without a master item."""

    code: str = "MASTER_ITEM_NOT_SELECTED"

    def __init__(self, category_code: str):
        self.category_code = category_code
        super().__init__(f"Master item must be selected for category {category_code}")


class InsufficientStockError(IssuanceError):
    """Requested quantity exceeds the master item's current stock."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, master_item_code: str, available: int, requested: int):
        self.master_item_code = master_item_code
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {master_item_code}: "
            f"available {available}, requested {requested}"
        )


class CapacityExceededUnresolvableError(IssuanceError):
    """Overflow cannot be resolved by a single 1-for-1 replacement."""

    code: str = "CAPACITY_EXCEEDED_UNRESOLVABLE"

    def __init__(self, category_code: str, active: int, pending: int, max_active: int):
        self.category_code = category_code
        self.active = active
        self.pending = pending
        self.max_active = max_active
        super().__init__(
            f"Issuing {pending} {category_code} would exceed maximum {max_active} "
            f"(currently {active} active); only 1-for-1 replacement is supported at capacity"
        )


class ReplacementTargetMissingError(IssuanceError):
    """Resubmission while awaiting replacement without designating a target."""

    code: str = "REPLACEMENT_TARGET_MISSING"

    def __init__(self, category_code: str | None = None):
        self.category_code = category_code
        super().__init__(
            f"A replacement target must be selected for {category_code or 'the category'}"
        )


class ReplacementTargetInvalidError(IssuanceError):
    """The designated target is not a replaceable assignment for this request."""

    code: str = "REPLACEMENT_TARGET_INVALID"

    def __init__(self, assignment_id: str, reason: str):
        self.assignment_id = assignment_id
        self.reason = reason
        super().__init__(f"Invalid replacement target {assignment_id}: {reason}")


class PartialCommitFailureError(IssuanceError):
    """
    A write inside the commit affected no rows.

    Raised inside the transaction; the engine rolls the whole batch back
    and reports the counts reached before the failure.
    """

    code: str = "PARTIAL_COMMIT_FAILURE"

    def __init__(self, succeeded: int, attempted: int, operation: str):
        self.succeeded = succeeded
        self.attempted = attempted
        self.operation = operation
        super().__init__(
            f"Commit aborted at {operation}: {succeeded} of {attempted} writes succeeded; "
            f"all writes rolled back"
        )


class InvalidSessionTransitionError(IssuanceError):
    """An action is not allowed from the session's current state."""

    code: str = "INVALID_SESSION_TRANSITION"

    def __init__(self, state: str, action: str):
        self.state = state
        self.action = action
        super().__init__(f"Action '{action}' is not allowed in state '{state}'")


# Employee-related exceptions


class EmployeeError(PpeKernelError):
    """Base exception for employee errors."""

    code: str = "EMPLOYEE_ERROR"


class EmployeeNotFoundError(EmployeeError):
    """Employee with given code or ID was not found."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_ref: str):
        self.employee_ref = employee_ref
        super().__init__(f"Employee not found: {employee_ref}")


class DuplicateEmployeeError(EmployeeError):
    """Employee code already exists."""

    code: str = "DUPLICATE_EMPLOYEE"

    def __init__(self, employee_code: str):
        self.employee_code = employee_code
        super().__init__(f"Employee code already exists: {employee_code}")


class InvalidEmployeeFieldError(EmployeeError):
    """An employee field is blank or not editable."""

    code: str = "INVALID_EMPLOYEE_FIELD"

    def __init__(self, field: str, reason: str = "required"):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid employee field '{field}': {reason}")


# Catalog-related exceptions


class CatalogError(PpeKernelError):
    """Base exception for category and master item errors."""

    code: str = "CATALOG_ERROR"


class CategoryNotFoundError(CatalogError):
    """Category with given ID or code was not found."""

    code: str = "CATEGORY_NOT_FOUND"

    def __init__(self, category_ref: str):
        self.category_ref = category_ref
        super().__init__(f"Category not found: {category_ref}")


class DuplicateCategoryError(CatalogError):
    """Category code or name already exists."""

    code: str = "DUPLICATE_CATEGORY"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"Category {field} already exists: {value}")


class CategoryInUseError(CatalogError):
    """Category cannot be deleted while master items or assignments reference it."""

    code: str = "CATEGORY_IN_USE"

    def __init__(self, category_code: str, master_item_count: int, assignment_count: int = 0):
        self.category_code = category_code
        self.master_item_count = master_item_count
        self.assignment_count = assignment_count
        super().__init__(
            f"Category {category_code} is referenced by {master_item_count} master item(s) "
            f"and {assignment_count} assignment(s)"
        )


class MasterItemNotFoundError(CatalogError):
    """Master item with given ID was not found."""

    code: str = "MASTER_ITEM_NOT_FOUND"

    def __init__(self, master_item_ref: str):
        self.master_item_ref = master_item_ref
        super().__init__(f"Master item not found: {master_item_ref}")


class DuplicateMasterItemCodeError(CatalogError):
    """Master item code already exists."""

    code: str = "DUPLICATE_MASTER_ITEM_CODE"

    def __init__(self, item_code: str):
        self.item_code = item_code
        super().__init__(f"Master item code already exists: {item_code}")


class InvalidCatalogFieldError(CatalogError):
    """A required category or master item field is blank."""

    code: str = "INVALID_CATALOG_FIELD"

    def __init__(self, field: str, reason: str = "required"):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid catalog field '{field}': {reason}")


# Assignment-related exceptions


class AssignmentError(PpeKernelError):
    """Base exception for assignment record errors."""

    code: str = "ASSIGNMENT_ERROR"


class AssignmentNotFoundError(AssignmentError):
    """Assignment with given ID was not found."""

    code: str = "ASSIGNMENT_NOT_FOUND"

    def __init__(self, assignment_id: str):
        self.assignment_id = assignment_id
        super().__init__(f"Assignment not found: {assignment_id}")


class AssignmentInactiveError(AssignmentError):
    """Operation requires an active assignment."""

    code: str = "ASSIGNMENT_INACTIVE"

    def __init__(self, assignment_id: str):
        self.assignment_id = assignment_id
        super().__init__(f"Assignment is not active: {assignment_id}")


# Stock-related exceptions


class StockError(PpeKernelError):
    """Base exception for stock ledger errors."""

    code: str = "STOCK_ERROR"


class InvalidStockQuantityError(StockError):
    """Quantity argument out of range for a stock operation."""

    code: str = "INVALID_STOCK_QUANTITY"

    def __init__(self, operation: str, quantity: int):
        self.operation = operation
        self.quantity = quantity
        super().__init__(f"Invalid quantity for {operation}: {quantity}")


# Configuration-related exceptions


class ConfigurationError(PpeKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidCapacityValueError(ConfigurationError):
    """Capacity ceilings must be integers >= 0."""

    code: str = "INVALID_CAPACITY_VALUE"

    def __init__(self, category_code: str, value: object):
        self.category_code = category_code
        self.value = value
        super().__init__(
            f"Capacity for {category_code} must be an integer >= 0, got {value!r}"
        )


# Storage


class RepositoryError(PpeKernelError):
    """An underlying storage operation failed."""

    code: str = "REPOSITORY_ERROR"

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Storage operation failed: {type(cause).__name__}: {cause}")
