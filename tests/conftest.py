"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides test database, client, fake decoder/camera and mocked Open Food
Facts transport fixtures.

Fakes:
------
- Images are bytes; frames are strings. A frame "code:<digits>" decodes to
  <digits>, anything else holds no barcode.
- Camera streams record every stop() call.

==============================================================================
"""

import asyncio
import os
import threading
from typing import Any, Callable, Dict, Generator, List, Optional

# Must be set before the application (and its settings) are imported
os.environ.setdefault("DATABASE_URL", "sqlite://")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from nutriscan.acquisition import AcquisitionController
from nutriscan.config import Settings
from nutriscan.contribution import ContributionClient
from nutriscan.core import exceptions
from nutriscan.core.dependencies import (
    get_camera_provider,
    get_contribution_client,
    get_db,
    get_decoder,
    get_lookup_client,
    get_remote_camera,
)
from nutriscan.db.database import Base, engine_options
from nutriscan.decoder import (
    CameraPermission,
    Decoder,
    DecoderConfig,
    RemoteCameraProvider,
    RemoteMediaStream,
)
from nutriscan.lookup import LookupWorkflow, ProductLookupClient
from nutriscan.main import app


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

# In-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite://"

engine = create_engine(SQLALCHEMY_TEST_DATABASE_URL, **engine_options(SQLALCHEMY_TEST_DATABASE_URL))

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    # Create all tables
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Drop all tables after test
        Base.metadata.drop_all(bind=engine)


# ============================================================================
# OPEN FOOD FACTS FIXTURES
# ============================================================================

EXAMPLE_COLA = {
    "code": "5000112637922",
    "product_name": "Example Cola",
    "brands": "Example Brand",
    "categories": "Beverages, Sodas, Colas",
    "ingredients_tags": ["en:carbonated-water", "en:sugar"],
    "nutrition_grades": "e",
    "nutriscore_version": "2023",
    "nutriscore": {
        "2023": {
            "grade": "c",
            "score": 5,
            "nutriscore_applicable": 1,
            "nutriscore_computed": 1,
            "data": {
                "is_beverage": 1,
                "negative_points": 7,
                "positive_points": 2,
                "components": {
                    "negative": [
                        {"id": "energy", "value": 180, "points": 2, "points_max": 10, "unit": "kJ"},
                        {"id": "sugars", "value": 10.6, "points": 5, "points_max": 10, "unit": "g"},
                    ],
                    "positive": [
                        {"id": "fiber", "value": 0, "points": 0, "points_max": 5, "unit": "g"},
                    ],
                },
            },
        }
    },
    "nutriments": {
        "energy-kcal_100g": 42,
        "energy-kj_100g": 180,
        "sugars_100g": 10.6,
        "salt_100g": 0,
    },
    "image_front_url": "https://images.test/cola-front.jpg",
}

PRODUCTS: Dict[str, Dict[str, Any]] = {"5000112637922": EXAMPLE_COLA}

# Code the mock answers with 200 but no product object
EMPTY_CODE = "1111111111111"


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: List[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            request.read()
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)


def off_handler(request: httpx.Request) -> httpx.Response:
    """Minimal stand-in for the product read and write endpoints."""
    if request.method == "POST":
        return httpx.Response(200, json={"status": 1, "status_verbose": "fields saved"})

    code = request.url.path.rsplit("/", 1)[-1].replace(".json", "")
    if code in PRODUCTS:
        return httpx.Response(200, json={"code": code, "status": 1, "product": PRODUCTS[code]})
    if code == EMPTY_CODE:
        return httpx.Response(200, json={"code": code, "status": 0})
    return httpx.Response(404, json={"code": code, "status": 0, "status_verbose": "product not found"})


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        off_base_url="https://off.test/",
        contact_email="dev@example.com",
    )


@pytest.fixture
def off_transport() -> RecordingTransport:
    return RecordingTransport(off_handler)


@pytest.fixture
def lookup_client(settings: Settings, off_transport: RecordingTransport) -> ProductLookupClient:
    return ProductLookupClient(settings, transport=off_transport)


@pytest.fixture
def workflow(lookup_client: ProductLookupClient) -> LookupWorkflow:
    return LookupWorkflow(lookup_client)


@pytest.fixture
def contribution_client(settings: Settings, off_transport: RecordingTransport) -> ContributionClient:
    return ContributionClient(settings, transport=off_transport)


# ============================================================================
# DECODER / CAMERA FAKES
# ============================================================================

class FakeDecoder(Decoder):
    """
    Decoder reading "code:<value>" frames.

    Frames equal to "slow:<value>" block until ``gate`` is set.
    """

    def __init__(self, events: Optional[List[str]] = None) -> None:
        self.events = events if events is not None else []
        self.gate = threading.Event()
        self.fail_on_stop = False

    def load_image(self, data: bytes) -> Any:
        text = data.decode("utf-8", errors="ignore")
        return text or None

    def decode_frame(self, frame: Any, config: DecoderConfig) -> Optional[str]:
        if frame.startswith("slow:"):
            self.gate.wait(timeout=5)
            return frame[len("slow:"):]
        if frame.startswith("code:"):
            return frame[len("code:"):]
        return None

    def stop(self, subscription) -> None:
        self.events.append("decoder.stop")
        if self.fail_on_stop:
            raise RuntimeError("decoder refused to stop")
        super().stop(subscription)


class TrackingStream(RemoteMediaStream):
    """Remote stream that counts stop() calls and can simulate a device failure."""

    def __init__(self, events: List[str]) -> None:
        super().__init__()
        self.events = events
        self.stop_calls = 0
        self._broken = False

    def break_device(self) -> None:
        self._broken = True
        self.push("broken")

    async def read_frame(self) -> Optional[Any]:
        frame = await super().read_frame()
        if self._broken:
            raise exceptions.stream_error("device lost")
        return frame

    def stop(self) -> None:
        self.stop_calls += 1
        self.events.append("stream.stop")
        super().stop()


class TrackingCamera(RemoteCameraProvider):
    """Remote camera handing out TrackingStreams."""

    def __init__(self, events: List[str]) -> None:
        super().__init__(CameraPermission.GRANTED)
        self.events = events
        self.streams: List[TrackingStream] = []

    async def open(self):
        await super().open()
        stream = TrackingStream(self.events)
        self._stream = stream
        self.streams.append(stream)
        return stream

    @property
    def open_streams(self) -> List[TrackingStream]:
        return [s for s in self.streams if not s.stopped]


@pytest.fixture
def events() -> List[str]:
    return []


@pytest.fixture
def decoder(events: List[str]) -> FakeDecoder:
    return FakeDecoder(events)


@pytest.fixture
def camera(events: List[str]) -> TrackingCamera:
    return TrackingCamera(events)


@pytest.fixture
def make_controller(decoder: FakeDecoder, camera: TrackingCamera, workflow: LookupWorkflow):
    """Factory for controllers wired to the fakes; call inside a running loop."""
    def factory(**kwargs) -> AcquisitionController:
        return AcquisitionController(decoder, camera, workflow, **kwargs)
    return factory


@pytest.fixture
def wait_for():
    """Async helper polling a predicate while the event loop runs other tasks."""
    async def waiter(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.01)
    return waiter


# ============================================================================
# CLIENT FIXTURE
# ============================================================================

@pytest.fixture(scope="function")
def client(
    db: Session,
    decoder: FakeDecoder,
    camera: TrackingCamera,
    lookup_client: ProductLookupClient,
    contribution_client: ContributionClient,
) -> Generator[TestClient, None, None]:
    """Create test client with database, decoder and HTTP overrides."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_decoder] = lambda: decoder
    app.dependency_overrides[get_camera_provider] = lambda: camera
    app.dependency_overrides[get_remote_camera] = lambda: camera
    app.dependency_overrides[get_lookup_client] = lambda: lookup_client
    app.dependency_overrides[get_contribution_client] = lambda: contribution_client

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
