from blackduck_mcp.server import mcp
from .logging import setup_logging
from .settings import settings


def main():
    setup_logging(settings.log_level, json_logs=settings.log_json)
    if settings.mcp_transport_mode == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(
            transport=settings.mcp_transport_mode,
            host=settings.mcp_host,
            port=settings.mcp_port,
            path=settings.mcp_http_path,
        )


if __name__ == "__main__":
    main()
