from rest_framework import serializers

from .entities import DEFAULT_MEDIA_TYPE, EncodedImage, PlateMode, PlateRequest
from .services import clean_plate_text

FILL_ALL_FIELDS = "Please fill in all text fields."


class PlateGenerateInputSerializer(serializers.Serializer):
    image = serializers.ImageField(required=True)
    plate_text = serializers.CharField(
        max_length=32, trim_whitespace=True,
        error_messages={"blank": FILL_ALL_FIELDS, "required": FILL_ALL_FIELDS},
    )
    style = serializers.CharField(
        max_length=100, trim_whitespace=True,
        error_messages={"blank": FILL_ALL_FIELDS, "required": FILL_ALL_FIELDS},
    )
    mode = serializers.ChoiceField(choices=[m.value for m in PlateMode], required=False, default=PlateMode.ADD.value)
    skip_detection = serializers.BooleanField(required=False, default=False)

    def validate_plate_text(self, value):
        value = value.upper()
        if not clean_plate_text(value):
            raise serializers.ValidationError("Plate text needs at least one letter or digit.")
        return value

    def to_request(self) -> PlateRequest:
        data = self.validated_data
        upload = data["image"]
        upload.seek(0)
        return PlateRequest(
            source_image=EncodedImage(
                media_type=getattr(upload, "content_type", None) or DEFAULT_MEDIA_TYPE,
                data=upload.read(),
            ),
            plate_text=data["plate_text"],
            style=data["style"],
            mode=PlateMode(data["mode"]),
            skip_detection=data["skip_detection"],
        )
