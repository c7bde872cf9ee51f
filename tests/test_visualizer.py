import base64

import httpx
import pytest

from propviz.services.image_generation import ImageProvider, ProviderChain
from propviz.services.image_storage import StoredObject, detect_content_type, extension_for, object_name
from propviz.services.visualizer import (
    VisualizationType,
    Visualizer,
    build_instruction,
    describe_option,
    parse_type,
)
from propviz.utils.exceptions import GenerationError, StorageError, ValidationError

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32

class StaticProvider(ImageProvider):
    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.calls = 0

    def edit(self, image_bytes, instruction, image_url):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result

class FakeStorage:
    def __init__(self, fail=False):
        self.fail = fail
        self.stored = []

    def fetch(self, url):
        return JPEG_BYTES

    def put(self, data, content_type, folder="uploads"):
        if self.fail:
            raise StorageError("Storage error: 500")
        self.stored.append((data, content_type, folder))
        return StoredObject(path=f"{folder}/1-abcdef.png", url=f"https://cdn.test/{folder}/1-abcdef.png")

@pytest.mark.parametrize("viz_type,options,expected", [
    ("paint", {"color": "sage green"}, "Change the house exterior paint color to sage green"),
    ("fence", {"material": "cedar", "style": "picket"}, "Add a cedar picket fence"),
    ("roof", {"color": "charcoal", "material": "metal"}, "Change the roof to charcoal metal"),
    ("roof", {"color": "charcoal"}, "Change the roof to charcoal shingles"),
    ("flooring", {"material": "oak", "color": "light"}, "Replace the flooring with light oak flooring"),
    ("flooring", {"material": "tile"}, "Replace the flooring with tile flooring"),
])
def test_instruction_text(viz_type, options, expected):
    assert build_instruction(viz_type, options) == expected

def test_missing_option():
    with pytest.raises(ValidationError, match="Missing option for fence: style"):
        build_instruction("fence", {"material": "cedar"})

def test_invalid_type():
    with pytest.raises(ValidationError, match="Invalid visualization type"):
        parse_type("siding")
    assert parse_type("roof") is VisualizationType.ROOF

def test_option_label():
    assert describe_option("paint", {"color": "navy"}) == "navy"
    assert describe_option("fence", {"material": "vinyl", "style": "privacy"}) == "vinyl privacy"
    assert describe_option("flooring", {"material": "oak"}) == "oak"

def test_chain_falls_back_to_next_provider():
    first = StaticProvider("huggingface", error=GenerationError("Model is loading"))
    second = StaticProvider("openai", result=PNG_BYTES)

    result, provider = ProviderChain([first, second]).edit(JPEG_BYTES, "Add a fence", "https://x/y.jpg")

    assert result == PNG_BYTES
    assert provider == "openai"
    assert first.calls == 1
    assert second.calls == 1

def test_chain_stops_at_first_success():
    first = StaticProvider("huggingface", result=PNG_BYTES)
    second = StaticProvider("openai", result=JPEG_BYTES)

    _, provider = ProviderChain([first, second]).edit(JPEG_BYTES, "Add a fence", "https://x/y.jpg")

    assert provider == "huggingface"
    assert second.calls == 0

def test_chain_transport_errors_fall_through():
    first = StaticProvider("huggingface", error=httpx.ConnectError("refused"))
    second = StaticProvider("vertex", result=PNG_BYTES)

    _, provider = ProviderChain([first, second]).edit(JPEG_BYTES, "Add a fence", "https://x/y.jpg")
    assert provider == "vertex"

def test_chain_falls_back_on_unexpected_errors():
    first = StaticProvider("vertex", error=RuntimeError("Your default credentials were not found"))
    second = StaticProvider("openai", result=PNG_BYTES)

    result, provider = ProviderChain([first, second]).edit(JPEG_BYTES, "Add a fence", "https://x/y.jpg")

    assert result == PNG_BYTES
    assert provider == "openai"
    assert first.calls == 1

def test_chain_all_fail():
    chain = ProviderChain([
        StaticProvider("huggingface", error=GenerationError("HuggingFace error: 500")),
        StaticProvider("openai", error=GenerationError("quota")),
    ])
    with pytest.raises(GenerationError, match="All image providers failed"):
        chain.edit(JPEG_BYTES, "Add a fence", "https://x/y.jpg")

def test_chain_without_providers():
    with pytest.raises(GenerationError):
        ProviderChain([]).edit(JPEG_BYTES, "Add a fence", "https://x/y.jpg")

def test_visualize_stores_generated_image():
    storage = FakeStorage()
    visualizer = Visualizer(storage=storage, chain=ProviderChain([StaticProvider("openai", result=PNG_BYTES)]))

    result = visualizer.visualize("https://cdn.test/uploads/house.jpg", "paint", {"color": "white"})

    assert result.temporary is False
    assert result.generated_url == "https://cdn.test/generated/1-abcdef.png"
    assert result.provider == "openai"
    assert storage.stored == [(PNG_BYTES, "image/png", "generated")]

    payload = result.to_dict()
    assert payload["success"] is True
    assert payload["originalUrl"] == "https://cdn.test/uploads/house.jpg"

def test_visualize_returns_data_url_when_storage_fails():
    visualizer = Visualizer(
        storage=FakeStorage(fail=True),
        chain=ProviderChain([StaticProvider("huggingface", result=PNG_BYTES)])
    )

    result = visualizer.visualize("https://cdn.test/uploads/house.jpg", "roof", {"color": "red"})

    assert result.temporary is True
    prefix = "data:image/png;base64,"
    assert result.generated_url.startswith(prefix)
    assert base64.b64decode(result.generated_url[len(prefix):]) == PNG_BYTES

def test_visualize_validates_before_fetching():
    storage = FakeStorage()
    provider = StaticProvider("openai", result=PNG_BYTES)
    visualizer = Visualizer(storage=storage, chain=ProviderChain([provider]))

    with pytest.raises(ValidationError):
        visualizer.visualize("https://cdn.test/uploads/house.jpg", "paint", {})
    assert provider.calls == 0

def test_visualizer_closes_storage_and_providers():
    class ClosingStorage(FakeStorage):
        closed = False

        def close(self):
            self.closed = True

    class ClosingProvider(StaticProvider):
        closed = False

        def close(self):
            self.closed = True

    storage = ClosingStorage()
    provider = ClosingProvider("openai", result=PNG_BYTES)

    with Visualizer(storage=storage, chain=ProviderChain([provider])) as visualizer:
        visualizer.visualize("https://cdn.test/uploads/house.jpg", "paint", {"color": "white"})

    assert storage.closed is True
    assert provider.closed is True

def test_content_type_detection():
    assert detect_content_type(PNG_BYTES) == "image/png"
    assert detect_content_type(JPEG_BYTES) == "image/jpeg"
    assert detect_content_type(b"RIFF\x00\x00\x00\x00WEBPVP8 ") == "image/webp"
    assert detect_content_type(b"GIF89a...") == "image/gif"
    assert detect_content_type(b"unknown") == "image/jpeg"

def test_object_names():
    assert extension_for("image/svg+xml") == "svg"
    assert extension_for("image/jpeg") == "jpeg"

    name = object_name("uploads", "image/png")
    assert name.startswith("uploads/")
    assert name.endswith(".png")
    assert name != object_name("uploads", "image/png")
