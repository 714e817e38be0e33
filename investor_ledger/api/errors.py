"""Map ledger errors onto HTTP responses"""

from fastapi import HTTPException

from investor_ledger.domain.exceptions import LedgerError

STATUS_BY_CODE = {
    "InvalidAmount": 422,
    "InvalidDate": 422,
    "InvariantViolation": 409,
    "NotFound": 404,
    "PersistenceFailure": 503,
}


def to_http_exception(error: LedgerError) -> HTTPException:
    """Error body carries the ledger error kind so clients can branch on it"""
    return HTTPException(
        status_code=STATUS_BY_CODE.get(error.code, 400),
        detail={"error": error.code, "message": error.message},
    )
