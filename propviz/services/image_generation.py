"""Generative image providers used by the visualizer"""

import base64
from typing import List, Optional
import httpx
from openai import OpenAI
from google import genai
from google.genai import types
import structlog

from propviz.config.settings import settings
from propviz.services.image_storage import detect_content_type
from propviz.utils.exceptions import GenerationError
from propviz.utils.monitoring import track_vendor

logger = structlog.get_logger(__name__)

class ImageProvider:
    """Edits a photo according to a natural-language instruction"""

    name = "base"

    def edit(self, image_bytes: bytes, instruction: str, image_url: str) -> bytes:
        raise NotImplementedError

    def close(self):
        """Release HTTP resources held by the vendor client"""

class HuggingFaceProvider(ImageProvider):
    """InstructPix2Pix on the Hugging Face inference API"""

    name = "huggingface"

    def __init__(self, token: Optional[str] = None, model: Optional[str] = None):
        self.token = token or settings.HUGGINGFACE_API_TOKEN
        self.model = model or settings.HUGGINGFACE_MODEL
        self.session = httpx.Client(timeout=settings.HTTP_TIMEOUT)

    def close(self):
        self.session.close()

    @track_vendor("huggingface")
    def edit(self, image_bytes: bytes, instruction: str, image_url: str) -> bytes:
        response = self.session.post(
            f"{settings.HUGGINGFACE_BASE_URL}/{self.model}",
            json={
                "inputs": base64.b64encode(image_bytes).decode("ascii"),
                "parameters": {"prompt": instruction},
            },
            headers={
                "Authorization": f"Bearer {self.token}",
                "X-Wait-For-Model": "true",
            }
        )

        if response.status_code == 503:
            logger.info("Model is loading", model=self.model)
            raise GenerationError("Model is loading, please try again in a moment")

        if response.is_error:
            logger.error("HuggingFace API error", status=response.status_code, body=response.text[:500])
            raise GenerationError(f"HuggingFace error: {response.status_code}")

        if not response.headers.get("content-type", "").startswith("image/"):
            raise GenerationError("HuggingFace returned no image")

        return response.content

class OpenAIProvider(ImageProvider):
    """Describe the photo with a vision model, then redraw it with the change applied"""

    name = "openai"

    DESCRIBE_PROMPT = (
        "Describe this house/property image in extreme detail - architecture style, "
        "exact colors of walls/roof/trim, materials, windows, doors, landscaping, driveway, "
        "sky, lighting, camera angle. Be very specific about every visual element."
    )

    def __init__(self, api_key: Optional[str] = None):
        self.client = OpenAI(api_key=api_key or settings.OPENAI_API_KEY)
        self.vision_model = settings.OPENAI_VISION_MODEL
        self.image_model = settings.OPENAI_IMAGE_MODEL

    def close(self):
        self.client.close()

    @track_vendor("openai")
    def edit(self, image_bytes: bytes, instruction: str, image_url: str) -> bytes:
        analysis = self.client.chat.completions.create(
            model=self.vision_model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self.DESCRIBE_PROMPT},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                }
            ],
            max_tokens=1000
        )
        description = analysis.choices[0].message.content
        logger.info("Image analyzed", model=self.vision_model)

        prompt = (
            f"Photorealistic image: {description}\n\n"
            f"IMPORTANT MODIFICATION: {instruction}. Keep EVERYTHING else exactly the same - "
            f"same house, same angle, same composition, same lighting."
        )

        generated = self.client.images.generate(
            model=self.image_model,
            prompt=prompt,
            n=1,
            size="1024x1024",
            quality="hd",
            style="natural",
            response_format="b64_json"
        )
        return base64.b64decode(generated.data[0].b64_json)

class VertexProvider(ImageProvider):
    """Gemini image model on Vertex AI, edits the photo directly"""

    name = "vertex"

    def __init__(self, project: Optional[str] = None, location: Optional[str] = None):
        self.client = genai.Client(
            vertexai=True,
            project=project or settings.GOOGLE_CLOUD_PROJECT,
            location=location or settings.GOOGLE_CLOUD_LOCATION
        )
        self.model = settings.VERTEX_IMAGE_MODEL

    @track_vendor("vertex")
    def edit(self, image_bytes: bytes, instruction: str, image_url: str) -> bytes:
        response = self.client.models.generate_content(
            model=self.model,
            contents=[
                types.Part.from_bytes(data=image_bytes, mime_type=detect_content_type(image_bytes)),
                f"{instruction}. Keep everything else in the photo unchanged.",
            ],
            config=types.GenerateContentConfig(response_modalities=["IMAGE"])
        )

        for candidate in response.candidates or []:
            for part in candidate.content.parts or []:
                if part.inline_data and part.inline_data.data:
                    return part.inline_data.data

        raise GenerationError("Vertex AI returned no image")

PROVIDER_CLASSES = {
    HuggingFaceProvider.name: HuggingFaceProvider,
    OpenAIProvider.name: OpenAIProvider,
    VertexProvider.name: VertexProvider,
}

def _has_credentials(name: str) -> bool:
    if name == HuggingFaceProvider.name:
        return bool(settings.HUGGINGFACE_API_TOKEN)
    if name == OpenAIProvider.name:
        return bool(settings.OPENAI_API_KEY)
    if name == VertexProvider.name:
        return bool(settings.GOOGLE_CLOUD_PROJECT)
    return False

def configured_provider_names() -> List[str]:
    return [
        name for name in settings.VISUALIZER_PROVIDERS
        if name in PROVIDER_CLASSES and _has_credentials(name)
    ]

def build_providers() -> List[ImageProvider]:
    """Instantiate configured providers in fallback order, skipping ones without credentials"""
    providers = []

    for name in settings.VISUALIZER_PROVIDERS:
        if name not in PROVIDER_CLASSES:
            logger.warning("Unknown image provider", provider=name)
        elif not _has_credentials(name):
            logger.info("Image provider skipped, no credentials", provider=name)
        else:
            try:
                providers.append(PROVIDER_CLASSES[name]())
            except Exception as e:
                logger.error("Image provider could not be created", provider=name, error=str(e))

    return providers

class ProviderChain:
    """Try each provider once, in order, until one returns an image"""

    def __init__(self, providers: Optional[List[ImageProvider]] = None):
        self.providers = build_providers() if providers is None else providers

    def edit(self, image_bytes: bytes, instruction: str, image_url: str):
        """
        Run the chain

        Returns:
            Tuple of (image bytes, name of the provider that produced them)
        """
        if not self.providers:
            raise GenerationError("No image generation provider is configured")

        last_error = None

        for provider in self.providers:
            try:
                logger.info("Requesting edit", provider=provider.name)
                result = provider.edit(image_bytes, instruction, image_url)
                logger.info("Edit received", provider=provider.name, size=len(result))
                return result, provider.name

            except Exception as e:
                logger.error(
                    "Image provider failed, falling back",
                    provider=provider.name,
                    error=str(e),
                    error_type=type(e).__name__
                )
                last_error = e

        raise GenerationError(f"All image providers failed: {last_error}")

    def close(self):
        for provider in self.providers:
            provider.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
