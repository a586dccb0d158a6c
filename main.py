"""Launch the choropleth maps FastAPI server."""

import uvicorn

from choropleth_maps.config import setup_logging


def main():
    setup_logging()
    uvicorn.run("choropleth_maps.server:app", host="0.0.0.0", port=8000, reload=True)


if __name__ == "__main__":
    main()
