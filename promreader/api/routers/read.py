"""Remote read router for promreader API.

Prometheus configuration:
```yaml
remote_read:
  - url: http://localhost:9201/api/v1/read
    read_recent: true
```
"""

import logging

from fastapi import APIRouter, Request, Response, status

from promreader.api.dependencies import ReadHandler
from promreader.remote.parser import PrometheusReadParser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["read"])


@router.post(
    "/read",
    status_code=status.HTTP_200_OK,
    summary="Prometheus remote read endpoint",
    response_class=Response,
    responses={
        200: {"content": {"application/x-protobuf": {}}},
        400: {"content": {"text/plain": {}}},
        500: {"content": {"text/plain": {}}},
    },
    description="""
Serve a Prometheus remote read request.

Accepts a Snappy-compressed Protobuf ReadRequest holding exactly one query
and answers with a Snappy-compressed Protobuf ReadResponse.

Errors:
- 400: body cannot be decompressed or decoded, or does not hold exactly one query
- 500: store query or response encoding failed
""",
)
async def remote_read(request: Request, handler: ReadHandler) -> Response:
    """Prometheus remote read endpoint.

    Args:
        request: FastAPI request object
        handler: Remote read pipeline

    Returns:
        Protobuf response with snappy encoding

    Raises:
        ClientFormatError: If the request is malformed (400)
        UpstreamError: If the store query fails (500)
        EncodingError: If the response cannot be encoded (500)
    """
    parser = PrometheusReadParser()
    headers = dict(request.headers)
    parser.check_headers(headers)

    compressed_data = await request.body()
    parser.validate_request_size(
        len(compressed_data), max_size=request.app.state.settings.max_request_size_bytes
    )

    logger.debug(
        f"Received Prometheus read request: {len(compressed_data)} bytes",
        extra={
            "compressed_size": len(compressed_data),
            "user_agent": parser.get_user_agent(headers),
        },
    )

    result = await handler.handle(compressed_data)

    return Response(
        content=result.payload,
        status_code=status.HTTP_200_OK,
        headers=parser.create_response_headers(),
    )
