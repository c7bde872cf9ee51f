"""Exterior visualization: turn a chosen option into an edited photo"""

import base64
from typing import Dict, Any, Optional
from dataclasses import dataclass
from enum import Enum
import structlog

from propviz.services.image_generation import ProviderChain
from propviz.services.image_storage import ImageStorage, detect_content_type
from propviz.utils.exceptions import ValidationError, StorageError

logger = structlog.get_logger(__name__)

class VisualizationType(Enum):
    """What part of the property is being changed"""
    PAINT = "paint"
    FENCE = "fence"
    ROOF = "roof"
    FLOORING = "flooring"

# Required and optional option keys per type
OPTION_SCHEMA = {
    VisualizationType.PAINT: {"required": ("color",), "optional": {}},
    VisualizationType.FENCE: {"required": ("material", "style"), "optional": {}},
    VisualizationType.ROOF: {"required": ("color",), "optional": {"material": "shingles"}},
    VisualizationType.FLOORING: {"required": ("material",), "optional": {"color": ""}},
}

def parse_type(value: Any) -> VisualizationType:
    try:
        return VisualizationType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in VisualizationType)
        raise ValidationError(f"Invalid visualization type. Use: {allowed}")

def normalize_options(viz_type: VisualizationType, options: Any) -> Dict[str, str]:
    """Check required keys are present and fill in defaults"""
    if not isinstance(options, dict):
        raise ValidationError("options must be an object")

    schema = OPTION_SCHEMA[viz_type]
    normalized = {}

    for key in schema["required"]:
        value = str(options.get(key) or "").strip()
        if not value:
            raise ValidationError(f"Missing option for {viz_type.value}: {key}")
        normalized[key] = value

    for key, default in schema["optional"].items():
        normalized[key] = str(options.get(key) or default).strip()

    return normalized

def build_instruction(viz_type: Any, options: Any) -> str:
    """Natural-language edit instruction sent to the image model"""
    viz_type = parse_type(viz_type) if not isinstance(viz_type, VisualizationType) else viz_type
    opts = normalize_options(viz_type, options)

    if viz_type is VisualizationType.PAINT:
        return f"Change the house exterior paint color to {opts['color']}"
    if viz_type is VisualizationType.FENCE:
        return f"Add a {opts['material']} {opts['style']} fence"
    if viz_type is VisualizationType.ROOF:
        return f"Change the roof to {opts['color']} {opts['material']}"

    finish = f"{opts['color']} {opts['material']}" if opts["color"] else opts["material"]
    return f"Replace the flooring with {finish} flooring"

def describe_option(viz_type: Any, options: Any) -> str:
    """Short label for the chosen option, as shown in the history list"""
    viz_type = parse_type(viz_type) if not isinstance(viz_type, VisualizationType) else viz_type
    opts = normalize_options(viz_type, options)

    if viz_type is VisualizationType.PAINT:
        return opts["color"]
    if viz_type is VisualizationType.FENCE:
        return f"{opts['material']} {opts['style']}"
    if viz_type is VisualizationType.ROOF:
        return f"{opts['color']} {opts['material']}"
    return f"{opts['color']} {opts['material']}".strip()

@dataclass
class VisualizationResult:
    original_url: str
    generated_url: str
    temporary: bool
    provider: str
    instruction: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "originalUrl": self.original_url,
            "generatedUrl": self.generated_url,
            "temporary": self.temporary,
            "provider": self.provider,
            "instruction": self.instruction,
        }

class Visualizer:
    """Downloads the photo, runs the provider chain and stores the result"""

    def __init__(self, storage: Optional[ImageStorage] = None, chain: Optional[ProviderChain] = None):
        self.storage = storage or ImageStorage()
        self.chain = chain or ProviderChain()

    def close(self):
        """Close the storage session and every provider client"""
        self.storage.close()
        self.chain.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def visualize(self, image_url: str, viz_type: Any, options: Any) -> VisualizationResult:
        instruction = build_instruction(viz_type, options)
        logger.info("Starting visualization", instruction=instruction, image_url=image_url)

        image_bytes = self.storage.fetch(image_url)
        result_bytes, provider = self.chain.edit(image_bytes, instruction, image_url)
        content_type = detect_content_type(result_bytes)

        try:
            stored = self.storage.put(result_bytes, content_type, folder="generated")
        except StorageError as e:
            # Still hand the image back, inline
            logger.error("Error storing generated image", error=str(e))
            encoded = base64.b64encode(result_bytes).decode("ascii")
            return VisualizationResult(
                original_url=image_url,
                generated_url=f"data:{content_type};base64,{encoded}",
                temporary=True,
                provider=provider,
                instruction=instruction,
            )

        return VisualizationResult(
            original_url=image_url,
            generated_url=stored.url,
            temporary=False,
            provider=provider,
            instruction=instruction,
        )
