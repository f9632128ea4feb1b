import logging

from nerdtalks.api import create_app
from nerdtalks.config import Settings


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


settings = Settings.from_env()
configure_logging(settings.log_level)
app = create_app(settings)


###############
# Entry Point
###############
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
