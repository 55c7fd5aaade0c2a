import pytest
from asgiref.sync import async_to_sync

from plates.entities import ModelReply, PlateMode, PlateRequest
from plates.exceptions import EXHAUSTED_MESSAGE, ExhaustedRetriesError, PlateDetectedSignal, TransparentImageError
from plates.services import ImageNormalizer, PlatePresenceDetector, PlateTextVerifier
from plates.usecases import MAX_RETRIES, GeneratePlateUseCase

from .conftest import FakeModel, image_reply


def make_usecase(generator, vision_answers=("ABC1234",), plate_found="NO", normalize=False):
    detection = FakeModel(plate_found)
    reading = FakeModel(*vision_answers)
    usecase = GeneratePlateUseCase(
        normalizer=ImageNormalizer(enabled=normalize),
        detector=PlatePresenceDetector(detection),
        verifier=PlateTextVerifier(reading),
        generator=generator,
    )
    return usecase, detection, reading


def make_request(image, mode=PlateMode.ADD, skip_detection=False):
    return PlateRequest(source_image=image, plate_text="ABC 1234", style="German",
                        mode=mode, skip_detection=skip_detection)


def run(usecase, req, events=None):
    return async_to_sync(usecase.execute)(req, on_progress=events.append if events is not None else None)


def test_detected_plate_stops_before_any_generation(opaque_png):
    generator = FakeModel(image_reply(b"img"))
    usecase, detection, _ = make_usecase(generator, plate_found="YES")

    with pytest.raises(PlateDetectedSignal):
        run(usecase, make_request(opaque_png))
    assert len(detection.calls) == 1
    assert generator.calls == []


@pytest.mark.parametrize("mode, skip", [(PlateMode.REPLACE, False), (PlateMode.ADD, True)])
def test_detection_is_skipped(opaque_png, mode, skip):
    generator = FakeModel(image_reply(b"img"))
    usecase, detection, _ = make_usecase(generator, plate_found="YES")

    result = run(usecase, make_request(opaque_png, mode=mode, skip_detection=skip))
    assert result.verified is True
    assert detection.calls == []


def test_first_verified_attempt_short_circuits(opaque_png):
    generator = FakeModel(image_reply(b"first"), image_reply(b"second"))
    usecase, _, reading = make_usecase(generator, vision_answers=("ABC1234",))

    result = run(usecase, make_request(opaque_png))
    assert (result.image.data, result.verified, result.attempts) == (b"first", True, 1)
    assert len(generator.calls) == 1
    assert reading.calls[0][1][0].data == b"first"


def test_verified_on_third_attempt(opaque_png):
    generator = FakeModel(image_reply(b"1"), image_reply(b"2"), image_reply(b"3"), image_reply(b"4"))
    usecase, _, _ = make_usecase(generator, vision_answers=("XYZ", "AB", "ABC1234"))

    result = run(usecase, make_request(opaque_png))
    assert (result.image.data, result.verified, result.attempts) == (b"3", True, 3)
    assert len(generator.calls) == 3


def test_all_unverified_returns_last_attempt(opaque_png):
    generator = FakeModel(image_reply(b"1"), image_reply(b"2"), image_reply(b"3"), image_reply(b"4"))
    usecase, _, _ = make_usecase(generator, vision_answers=("WRONG",))

    result = run(usecase, make_request(opaque_png))
    assert result.image.data == b"4"
    assert result.verified is False
    assert result.attempts == MAX_RETRIES
    assert len(generator.calls) == MAX_RETRIES


def test_failed_attempts_keep_last_produced_image(opaque_png):
    generator = FakeModel(
        RuntimeError("503 from model"),
        image_reply(b"2"),
        ModelReply(text="I cannot edit this image."),
        RuntimeError("timeout"),
    )
    usecase, _, _ = make_usecase(generator, vision_answers=("WRONG",))

    result = run(usecase, make_request(opaque_png))
    assert (result.image.data, result.verified) == (b"2", False)
    assert len(generator.calls) == MAX_RETRIES


def test_verifier_errors_are_retried(opaque_png):
    generator = FakeModel(image_reply(b"1"), image_reply(b"2"))
    usecase, _, _ = make_usecase(generator, vision_answers=(ConnectionError("vision down"), "ABC1234"))

    result = run(usecase, make_request(opaque_png))
    assert (result.image.data, result.attempts) == (b"2", 2)


def test_no_image_at_all_raises_exhausted(opaque_png):
    generator = FakeModel(ModelReply(text="no"))
    usecase, _, reading = make_usecase(generator)

    with pytest.raises(ExhaustedRetriesError) as err:
        run(usecase, make_request(opaque_png))
    assert str(err.value) == "No image was returned by the model."
    assert len(generator.calls) == MAX_RETRIES
    assert reading.calls == []


def test_exhausted_carries_last_transport_error(opaque_png):
    generator = FakeModel(RuntimeError("first"), RuntimeError("quota exceeded"))
    usecase, _, _ = make_usecase(generator)

    with pytest.raises(ExhaustedRetriesError, match="quota exceeded"):
        run(usecase, make_request(opaque_png))


def test_exhausted_default_message(opaque_png):
    generator = FakeModel(RuntimeError())
    usecase, _, _ = make_usecase(generator)

    with pytest.raises(ExhaustedRetriesError) as err:
        run(usecase, make_request(opaque_png))
    assert str(err.value) == EXHAUSTED_MESSAGE


def test_transparent_image_is_not_retried(rgba_png):
    generator = FakeModel(image_reply(b"img"))
    usecase, detection, _ = make_usecase(generator, normalize=True)

    with pytest.raises(TransparentImageError):
        run(usecase, make_request(rgba_png({0: 10})))
    assert detection.calls == []
    assert generator.calls == []


def test_model_sees_the_normalized_image(opaque_png):
    generator = FakeModel(image_reply(b"img"))
    usecase, detection, _ = make_usecase(generator, normalize=True)

    run(usecase, make_request(opaque_png))
    assert detection.calls[0][1][0].media_type == "image/jpeg"
    assert generator.calls[0][1][0].media_type == "image/jpeg"


def test_progress_events_in_order(opaque_png):
    generator = FakeModel(image_reply(b"1"), image_reply(b"2"))
    usecase, _, _ = make_usecase(generator, vision_answers=("NOPE", "ABC1234"))
    events = []

    run(usecase, make_request(opaque_png), events)
    assert events == [
        "Checking image...",
        "Scanning for existing plates...",
        "Generating plate...",
        "Verifying plate text...",
        "Refining details (Attempt 2/4)...",
        "Verifying plate text...",
    ]


def test_replace_progress_has_no_scan(opaque_png):
    usecase, _, _ = make_usecase(FakeModel(image_reply(b"1")))
    events = []

    run(usecase, make_request(opaque_png, mode=PlateMode.REPLACE), events)
    assert "Scanning for existing plates..." not in events


@pytest.mark.parametrize(
    "mode, phrase",
    [(PlateMode.ADD, "Add a realistic German license plate"),
     (PlateMode.REPLACE, "Replace the existing license plate on the car with a realistic German")],
)
def test_edit_instruction_follows_mode(opaque_png, mode, phrase):
    generator = FakeModel(image_reply(b"1"))
    usecase, _, _ = make_usecase(generator)

    run(usecase, make_request(opaque_png, mode=mode))
    instruction = generator.calls[0][0]
    assert phrase in instruction
    assert 'must be strictly "ABC 1234"' in instruction
    assert "Do not modify any other part" in instruction
