import hmac

from fastapi import HTTPException, Request, Security
from fastapi.security import APIKeyHeader

api_key_header = APIKeyHeader(name="X-Api-Key", auto_error=False)


async def verify_api_key(request: Request, api_key: str | None = Security(api_key_header)) -> None:
    """Check the X-Api-Key header against API_SERVER_API_KEY.

    Raises:
        HTTPException: 401 if the header is missing or the key does not match.
    """
    expected_key = request.app.state.helper_config.get_string_val("API_SERVER_API_KEY")
    if api_key is None or not hmac.compare_digest(api_key.encode(), expected_key.encode()):
        request.app.state.logging.warning("Rejected request to %s: invalid API key", request.url.path)
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
