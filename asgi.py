from starlette.applications import Starlette
from starlette.responses import PlainTextResponse
from starlette.routing import Mount, Route

from blackduck_mcp.logging import setup_logging
from blackduck_mcp.server import mcp
from blackduck_mcp.settings import settings

setup_logging(settings.log_level, json_logs=settings.log_json)

mcp_app = mcp.http_app(path=settings.mcp_http_path)


async def health(_):
    return PlainTextResponse("ok")

# Put /health BEFORE the catch-all Mount("/")
app = Starlette(
    routes=[
        Route("/health", health),
        Mount("/", app=mcp_app),
    ],
    lifespan=mcp_app.lifespan,
)
