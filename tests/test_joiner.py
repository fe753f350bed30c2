import httpx
import pytest

from queue_client.joiner import QueueJoiner
from shared.errors import JoinError
from shared.schemas import JobRequest, Mode, ServerFileReference


def _job(mode=Mode.RECOMMENDATION, session_token="sess0000001"):
    reference = ServerFileReference(
        server_path="/tmp/gradio/sess0000001/look.jpg",
        public_url="https://queue.test/file=/tmp/gradio/sess0000001/look.jpg",
        display_name="look.jpg",
        byte_size=34,
        mime_type="image/jpeg",
    )
    return JobRequest(file_reference=reference, mode=mode, session_token=session_token)


@pytest.mark.asyncio
async def test_join_posts_envelope(fake_server, http_client, config):
    await QueueJoiner(http_client, config).join(_job(Mode.CREATION))

    assert fake_server.joins == [
        {
            "data": [
                {
                    "path": "/tmp/gradio/sess0000001/look.jpg",
                    "url": "https://queue.test/file=/tmp/gradio/sess0000001/look.jpg",
                    "orig_name": "look.jpg",
                    "size": 34,
                    "mime_type": "image/jpeg",
                },
                "creation",
            ],
            "event_data": None,
            "fn_index": 0,
            "trigger_id": 10,
            "session_hash": "sess0000001",
        }
    ]


@pytest.mark.asyncio
async def test_pipeline_step_comes_from_config(fake_server, http_client, config):
    config.fn_index = 3
    config.trigger_id = 42
    await QueueJoiner(http_client, config).join(_job())
    assert fake_server.joins[0]["fn_index"] == 3
    assert fake_server.joins[0]["trigger_id"] == 42


@pytest.mark.asyncio
async def test_rejected_join(fake_server, http_client, config):
    fake_server.join_status = 503
    with pytest.raises(JoinError, match="503"):
        await QueueJoiner(http_client, config).join(_job())


@pytest.mark.asyncio
async def test_join_transport_failure(config):
    def drop(request):
        raise httpx.ReadTimeout("timed out", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(drop)) as client:
        with pytest.raises(JoinError):
            await QueueJoiner(client, config).join(_job())
