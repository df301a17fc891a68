import logging
import time

from fastapi import Request

from lms_api.utils.enums import AuthStage

logger = logging.getLogger("lms_api.requests")


async def request_logger(request: Request, call_next):
    start = time.time()
    logger.debug(f"→ {request.method} {request.url.path}")

    response = await call_next(request)

    # Guards leave AUTHORIZED behind once the handler has run
    stage = getattr(request.state, "auth_stage", None)
    if stage == AuthStage.AUTHORIZED:
        stage = request.state.auth_stage = AuthStage.HANDLER_INVOKED

    elapsed = time.time() - start
    logger.info(
        f"← {request.method} {request.url.path} "
        f"[{response.status_code}] ({elapsed:.3f}s)"
        + (f" auth={stage}" if stage else "")
    )

    response.headers["X-Process-Time"] = str(elapsed)
    return response
