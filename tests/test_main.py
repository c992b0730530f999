import asyncio

import pytest

import main
from dashboard.config import ServerConfig


class StubServer:
    def __init__(self, context, start_error=None):
        self.context = context
        self.start_error = start_error
        self.started = False
        self.stopped = False

    async def start(self):
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def stop(self):
        self.stopped = True


@pytest.fixture
def servers(tmp_path, monkeypatch):
    created = []

    def factory(start_error=None):
        def build(context):
            server = StubServer(context, start_error)
            created.append(server)
            return server
        monkeypatch.setattr(main, "DashboardServer", build)

    monkeypatch.setattr(
        main.ServerConfig,
        "from_env",
        lambda: ServerConfig(host="127.0.0.1", port=0, data_dir=tmp_path)
    )
    factory.created = created
    return factory


def test_failed_start_still_stops_server(servers):
    servers(start_error=OSError("address already in use"))
    app = main.DashboardApplication()

    asyncio.run(app.start())

    assert servers.created[0].stopped
    assert app.server is None
    assert not app.running
    assert app.shutdown_event.is_set()


def test_stop_ends_running_application(servers):
    servers()
    app = main.DashboardApplication()

    async def run():
        task = asyncio.create_task(app.start())
        while not app.running:
            await asyncio.sleep(0)
        await app.stop()
        await task

    asyncio.run(run())

    assert servers.created[0].started
    assert servers.created[0].stopped
    assert not app.running
