import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level="INFO"):
    """Root logging for the ingester process; safe to call again to change level."""
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
    # request-level chatter from the ES transport
    logging.getLogger("elastic_transport").setLevel(logging.WARNING)
    logging.getLogger("watchdog").setLevel(logging.WARNING)
