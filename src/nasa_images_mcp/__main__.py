"""Allow ``python -m nasa_images_mcp``."""

from nasa_images_mcp.presentation.mcp_server.server import main

if __name__ == "__main__":
    main()
