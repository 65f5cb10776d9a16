"""Model runtime service that loads models from a VFS and answers inference requests."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Protocol, Union

from vnodekit.vfs import VfsClose, VfsData, VfsError, VfsOpen, VfsRead, VfsService, VfsSuccess

logger = logging.getLogger(__name__)

MAX_MODEL_SIZE = 1_000_000


class VfsBackend(Protocol):
    """Anything that answers VFS requests."""

    def handle_request(self, request: object) -> object: ...


class ModelLoadError(Exception):
    """Raised when a model cannot be loaded."""


@dataclass(frozen=True)
class LoadedModel:
    """A model held in memory."""

    model_id: str
    data: bytes


@dataclass(frozen=True)
class ImageClassification:
    model_id: str
    image_data: bytes


@dataclass(frozen=True)
class TextGeneration:
    model_id: str
    prompt: str
    max_tokens: int


@dataclass(frozen=True)
class ImageClassificationResult:
    class_labels: tuple[str, ...]
    probabilities: tuple[float, ...]


@dataclass(frozen=True)
class TextGenerationResult:
    generated_text: str


@dataclass(frozen=True)
class InferError:
    message: str


InferRequest = Union[ImageClassification, TextGeneration]
InferResponse = Union[ImageClassificationResult, TextGenerationResult, InferError]

_REQUEST_TYPES = (ImageClassification, TextGeneration)


class ModelRuntimeService:
    """Loads models on demand and runs simulated inference."""

    def __init__(self, vfs: VfsBackend | None = None) -> None:
        self.vfs: VfsBackend = vfs if vfs is not None else VfsService()
        self.loaded_models: dict[str, LoadedModel] = {}
        logger.info("Model Runtime Service: Initializing...")

    def load_model(self, model_id: str, path: str) -> LoadedModel:
        """Return the cached model, or read it from the VFS at path."""
        cached = self.loaded_models.get(model_id)
        if cached is not None:
            logger.info("Model Runtime: Model '%s' already loaded.", model_id)
            return cached

        logger.info("Model Runtime: Loading model '%s' from VFS path '%s'.", model_id, path)
        match self.vfs.handle_request(VfsOpen(path, 0)):
            case VfsSuccess(value=fd):
                pass
            case VfsError(message=message):
                raise ModelLoadError(f"Failed to open model file: {message}.")
            case _:
                raise ModelLoadError("Unexpected VFS response during model open.")

        try:
            match self.vfs.handle_request(VfsRead(fd, MAX_MODEL_SIZE, 0)):
                case VfsData(data=data):
                    pass
                case VfsError(message=message):
                    raise ModelLoadError(f"Failed to read model data: {message}.")
                case _:
                    raise ModelLoadError("Unexpected VFS response during model read.")
        finally:
            self.vfs.handle_request(VfsClose(fd))

        if not data:
            raise ModelLoadError("Model file is empty.")

        model = LoadedModel(model_id, bytes(data))
        self.loaded_models[model_id] = model
        return model

    def handle_request(self, request: InferRequest) -> InferResponse:
        """Process one inference request and return its response."""
        match request:
            case ImageClassification(model_id=model_id, image_data=image_data):
                try:
                    model = self.load_model(
                        model_id, f"/models/{model_id}/image_classifier.bin")
                except ModelLoadError as exc:
                    return InferError(f"Failed to load model: {exc}.")
                logger.info("Model Runtime: Classifying %d bytes with model '%s'.",
                            len(image_data), model.model_id)
                return ImageClassificationResult(("cat", "dog"), (0.9, 0.1))
            case TextGeneration(model_id=model_id, prompt=prompt, max_tokens=max_tokens):
                try:
                    model = self.load_model(
                        model_id, f"/models/{model_id}/text_generator.bin")
                except ModelLoadError as exc:
                    return InferError(f"Failed to load model: {exc}.")
                logger.info("Model Runtime: Generating %d tokens with model '%s'.",
                            max_tokens, model.model_id)
                return TextGenerationResult(
                    f"This is a generated text based on the prompt: '{prompt}'. "
                    f"It is generated by model {model.model_id}.")
        raise TypeError(f"unsupported inference request: {request!r}")

    def serve(self, requests: Iterable[object]) -> Iterator[InferResponse]:
        """Answer each request in turn, skipping anything that is not a request."""
        for request in requests:
            if not isinstance(request, _REQUEST_TYPES):
                logger.warning("Model Runtime Service: Failed to decode request %r.", request)
                continue
            yield self.handle_request(request)