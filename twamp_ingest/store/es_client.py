import logging
import time

from elasticsearch import Elasticsearch

from twamp_ingest.config.settings import Settings
from twamp_ingest.ingestion.errors import StartupError

logger = logging.getLogger(__name__)


def get_es_client(settings: Settings) -> Elasticsearch:
    """Build the shared ES client; certificate checks follow ES_VERIFY_CERTS"""
    kwargs = {
        "request_timeout": settings.es_request_timeout,
        "verify_certs": settings.es_verify_certs,
    }
    if not settings.es_verify_certs:
        kwargs["ssl_show_warn"] = False
    if settings.es_user:
        kwargs["basic_auth"] = (settings.es_user, settings.es_password)

    try:
        es = Elasticsearch(settings.es_url, **kwargs)
    except (ValueError, TypeError) as e:
        raise StartupError(f"Error creating Elasticsearch client for {settings.es_url}: {e}") from e

    logger.info(
        f"Elasticsearch client for {settings.es_url} (verify_certs={settings.es_verify_certs})"
    )
    return es


def wait_for_es(es: Elasticsearch, timeout: float = 60, interval: float = 2):
    """Block until the cluster reports yellow or better, or raise StartupError."""
    start = time.time()
    attempt = 0
    while time.time() - start < timeout:
        attempt += 1
        try:
            es.cluster.health(wait_for_status="yellow", timeout="10s")
            logger.info(f"Elasticsearch is yellow+ after {time.time() - start:.1f}s ({attempt} attempts)")
            return
        except Exception as e:
            logger.debug(f"ES not ready (attempt {attempt}): {type(e).__name__}: {e}")
            time.sleep(interval)
    raise StartupError(f"Elasticsearch not healthy after {timeout}s")
