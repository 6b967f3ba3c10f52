from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(data=None, message=None, status_code=200):
    """Standard success envelope: {success, message?, data}"""
    content = {"success": True}
    if message:
        content["message"] = message
    content["data"] = data
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def error_response(status_code, message, **extra):
    content = {"success": False, "message": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))
