from fastapi.responses import JSONResponse


SAFE_DEFAULT_STATUS = {
    "isPremium": False,
    "status": "free",
    "trialDaysLeft": 0,
    "trialExpired": True,
    "isPaying": False,
    "nextDueDate": None,
}


def success_response(data=None, message="OK", status=200):
    return JSONResponse(
        status_code=status,
        content={
            "ok": True,
            "data": data or {},
            "error": None,
            "message": message,
        }
    )


def error_response(error_code, status=400, message="An error occurred", data=None):
    return JSONResponse(
        status_code=status,
        content={
            "ok": False,
            "data": data or {},
            "error": error_code,
            "message": message,
        }
    )


def safe_default_response(error, resolution_error, status=200):
    """Fail-closed status payload: not premium, trial counted as used up."""
    return JSONResponse(
        status_code=status,
        content={
            **SAFE_DEFAULT_STATUS,
            "error": error,
            "resolutionError": resolution_error,
        }
    )


def ack_response(message, status=200):
    return JSONResponse(
        status_code=status,
        content={"success": True, "message": message}
    )


def webhook_error_response(error, status):
    return JSONResponse(
        status_code=status,
        content={"success": False, "error": error}
    )
