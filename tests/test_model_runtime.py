import pytest

from vnodekit.model_runtime import (
    MAX_MODEL_SIZE,
    ImageClassification,
    ImageClassificationResult,
    InferError,
    ModelLoadError,
    ModelRuntimeService,
    TextGeneration,
    TextGenerationResult,
)
from vnodekit.vfs import VfsClose, VfsData, VfsError, VfsOpen, VfsRead, VfsSuccess


class ScriptedVfs:
    def __init__(self, open_response=None, read_response=None):
        self.open_response = open_response or VfsSuccess(7)
        self.read_response = read_response or VfsData(b"weights")
        self.calls = []

    def handle_request(self, request):
        self.calls.append(request)
        if isinstance(request, VfsOpen):
            return self.open_response
        if isinstance(request, VfsRead):
            return self.read_response
        return VfsSuccess(0)


def test_image_classification_with_default_vfs():
    service = ModelRuntimeService()
    response = service.handle_request(ImageClassification("resnet", b"\x00\x01"))
    assert response == ImageClassificationResult(("cat", "dog"), (0.9, 0.1))
    assert set(service.loaded_models) == {"resnet"}
    assert service.loaded_models["resnet"].data.startswith(b"dummy_data_from_file_")


def test_text_generation_message():
    service = ModelRuntimeService()
    response = service.handle_request(TextGeneration("gpt", "hello", 5))
    assert response == TextGenerationResult(
        "This is a generated text based on the prompt: 'hello'. It is generated by model gpt.")


def test_load_model_reads_expected_path_and_closes():
    vfs = ScriptedVfs()
    service = ModelRuntimeService(vfs)
    service.handle_request(TextGeneration("m1", "p", 1))
    assert vfs.calls == [
        VfsOpen("/models/m1/text_generator.bin", 0),
        VfsRead(7, MAX_MODEL_SIZE, 0),
        VfsClose(7),
    ]


def test_cached_model_is_not_reloaded():
    vfs = ScriptedVfs()
    service = ModelRuntimeService(vfs)
    first = service.load_model("m", "/models/m/a.bin")
    calls_after_first = len(vfs.calls)
    second = service.load_model("m", "/models/m/b.bin")
    assert second is first
    assert len(vfs.calls) == calls_after_first


def test_open_failure_becomes_infer_error():
    vfs = ScriptedVfs(open_response=VfsError(2, "Path not found: x"))
    response = ModelRuntimeService(vfs).handle_request(ImageClassification("m", b""))
    assert response == InferError(
        "Failed to load model: Failed to open model file: Path not found: x..")


def test_read_failure_closes_file():
    vfs = ScriptedVfs(read_response=VfsError(5, "I/O error"))
    service = ModelRuntimeService(vfs)
    with pytest.raises(ModelLoadError, match="Failed to read model data: I/O error."):
        service.load_model("m", "/m.bin")
    assert isinstance(vfs.calls[-1], VfsClose)
    assert service.loaded_models == {}


def test_unexpected_read_response():
    vfs = ScriptedVfs(read_response=VfsSuccess(3))
    with pytest.raises(ModelLoadError, match="Unexpected VFS response during model read."):
        ModelRuntimeService(vfs).load_model("m", "/m.bin")


def test_unexpected_open_response():
    vfs = ScriptedVfs(open_response=VfsData(b"x"))
    with pytest.raises(ModelLoadError, match="Unexpected VFS response during model open."):
        ModelRuntimeService(vfs).load_model("m", "/m.bin")


def test_empty_model_file_rejected():
    vfs = ScriptedVfs(read_response=VfsData(b""))
    service = ModelRuntimeService(vfs)
    with pytest.raises(ModelLoadError, match="Model file is empty."):
        service.load_model("m", "/m.bin")
    assert "m" not in service.loaded_models


def test_serve_skips_non_requests():
    service = ModelRuntimeService()
    responses = list(service.serve(["junk", ImageClassification("a", b"x")]))
    assert responses == [ImageClassificationResult(("cat", "dog"), (0.9, 0.1))]


def test_unknown_request_raises():
    with pytest.raises(TypeError):
        ModelRuntimeService().handle_request(object())