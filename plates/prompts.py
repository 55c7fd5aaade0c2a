from .entities import PlateMode

DETECTION_PROMPT = (
    "Analyze the front and rear bumpers of the car in this image. "
    "Look specifically for an oblong, rectangular, or square object mounted on the bumper "
    "where a license plate is typically found. Is there a license plate present? "
    "Answer strictly with YES or NO."
)

VERIFICATION_PROMPT = (
    "Read the license plate text from this car. "
    "Return ONLY the alphanumeric characters found on the plate. "
    "Ignore country names, slogans, or small print."
)

ADD_ACTION = (
    "The car in this image does not have a license plate. "
    "Add a realistic {style} license plate to the front bumper "
    "(or rear bumper if the rear is visible)."
)

REPLACE_ACTION = "Replace the existing license plate on the car with a realistic {style} license plate."

EDIT_PROMPT = """\
Edit this image. {action}
The license plate text must be strictly "{plate_text}".
Ensure the text is sharp, legible, and perfectly spelled.
Maintain the exact perspective, lighting, shadows, and reflection of the original car and bumper.
Do not modify any other part of the car or the background. High quality, photorealistic.
"""


def build_edit_prompt(mode: PlateMode, plate_text: str, style: str) -> str:
    template = ADD_ACTION if mode == PlateMode.ADD else REPLACE_ACTION
    return EDIT_PROMPT.format(action=template.format(style=style), plate_text=plate_text)
