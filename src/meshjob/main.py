# main.py
import uvicorn

from meshjob.adapters.aiohttp_client_adapter import AioHttpClientAdapter
from meshjob.adapters.image_store_inmemory import InMemoryImageStore
from meshjob.adapters.retry_tenacity import TenacityRetryAdapter
from meshjob.adapters.web.fastapi import create_app
from meshjob.core.config import PollerConfig, SubmissionConfig, provider_from_app_settings
from meshjob.core.logging_config import configure_logging
from meshjob.core.managers.generation_manager import GenerationManager
from meshjob.core.managers.observers import SnapshotRecorder
from meshjob.core.managers.provider_gateway import ProviderGateway
from meshjob.core.managers.status_poller import StatusPoller
from meshjob.core.managers.submission_normalizer import SubmissionNormalizer
from meshjob.core.managers.upload_staging import UploadStager
from meshjob.core.settings import app_settings, logger


# main lives at the outermost layer (not in core):
# instantiates the concrete adapters, wires dependencies, starts the server.

def build_app():
    configure_logging(
        app_settings.MESHJOB_LOG_LEVEL,
        disable_uvicorn_access=app_settings.MESHJOB_DISABLE_ACCESS_LOG,
    )
    app_settings.print_settings(logger)
    if not app_settings.MESHJOB_PROVIDER_API_KEY.get_secret_value():
        logger.warning("MESHJOB_PROVIDER_API_KEY is not set; provider requests will be unauthenticated")

    endpoint = provider_from_app_settings(app_settings)
    http_client = AioHttpClientAdapter(total_timeout=endpoint.timeout)
    image_store = InMemoryImageStore()
    stager = UploadStager(image_store, app_settings.MESHJOB_PUBLIC_BASE_URL)
    recorder = SnapshotRecorder(
        max_history=app_settings.MESHJOB_SNAPSHOT_HISTORY,
        max_finished_jobs=app_settings.MESHJOB_RETAINED_JOBS,
    )

    def generation_manager_factory(client):
        gateway = ProviderGateway(client, endpoint)
        submission = SubmissionNormalizer(
            gateway,
            config=SubmissionConfig.from_app_settings(app_settings),
            retry_port=TenacityRetryAdapter(),
        )
        poller = StatusPoller(gateway, config=PollerConfig.from_app_settings(app_settings))
        return GenerationManager(
            submission, poller, finished_retention=app_settings.MESHJOB_RETAINED_JOBS
        )

    return create_app(
        http_client=http_client,
        generation_manager_factory=generation_manager_factory,
        stager=stager,
        recorder=recorder,
    )


def main():
    app = build_app()
    # Let uvicorn inherit existing logging (separate sinks & correlation ids)
    uvicorn.run(
        app,
        host=app_settings.MESHJOB_API_HOST,
        port=app_settings.MESHJOB_API_PORT,
        log_config=None,
        log_level=str(app_settings.MESHJOB_LOG_LEVEL).lower(),
    )


if __name__ == "__main__":
    main()
