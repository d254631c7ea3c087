"""Prompts for the two-step skin image analysis (vision, then JSON formatting)."""

from typing import Any

VISION_SYSTEM_PROMPT = (
    "You are an expert dermatology AI assistant. Analyze skin conditions from images and "
    "provide preliminary insights. Always emphasize that this is NOT a medical diagnosis and "
    "users should consult healthcare professionals."
)

FORMAT_SYSTEM_PROMPT = (
    "You are a medical information formatter. Convert dermatology analysis into structured "
    "JSON format."
)

VISION_PROMPT = """Analyze this skin condition image. The affected area is: {region}.

Patient information:
- Age: {age}
- Sex: {sex}
- Country: {country}
- Pain/Itch level (1-10): {pain}
- Duration: {duration}
- Symptoms: {symptoms}
- Fever-like symptoms: {fever}
- Spreading: {spreading}
- Recent chemical exposure: {chemicals}
- Recent spa/pool/sauna: {spa}
- Additional info: {more_info}

Please provide:
1. Visual description of the condition
2. Possible causes or conditions (educational purposes only)
3. Whether it appears contagious
4. Typical duration for such conditions
5. Things to avoid
6. When to seek professional help
7. General over-the-counter care suggestions
{premium_section}
IMPORTANT: This is for educational purposes only and is NOT a medical diagnosis."""

PREMIUM_VISION_SECTION = """8. Lifestyle factors that may contribute
9. Personalized recommendations based on age, sex, and location
10. Preventive measures
"""

FORMAT_PROMPT = """Convert this dermatology analysis into structured JSON format:

{analysis}

Return a JSON object with this exact structure:
{{
  "title": "Brief condition name",
  "summary": "2-3 sentence summary",
  "contagious": boolean,
  "duration": "Estimated timeframe",
  "avoid": "What to avoid",
  "when": "When to see a doctor",
  "otc": "Over-the-counter suggestions",
  "personalNote": "Age/sex/location considerations"{premium_fields}
}}"""

PREMIUM_FORMAT_FIELDS = """,
  "lifestyle": "Lifestyle factors",
  "prevention": "Preventive measures",
  "tracking": "What to monitor weekly\""""

DISCLAIMER = (
    "This is NOT a medical diagnosis. Always consult a healthcare professional for proper "
    "medical advice."
)


def _answer(questionnaire: dict[str, Any], key: str, default: str) -> str:
    value = questionnaire.get(key)
    if value is None or value == "":
        return default
    return str(value)


def build_vision_prompt(questionnaire: dict[str, Any], region: str, premium: bool) -> str:
    """Fill the vision prompt from questionnaire answers."""
    symptoms = " ".join(
        label for key, label in (("itch", "Itching"), ("hurt", "Pain")) if questionnaire.get(key)
    )
    return VISION_PROMPT.format(
        region=region or "not specified",
        age=_answer(questionnaire, "age", "not provided"),
        sex=_answer(questionnaire, "sex", "not provided"),
        country=_answer(questionnaire, "country", "not provided"),
        pain=_answer(questionnaire, "pain", "not provided"),
        duration=_answer(questionnaire, "duration", "not provided"),
        symptoms=symptoms or "none reported",
        fever=_answer(questionnaire, "fever", "No"),
        spreading=_answer(questionnaire, "spreading", "No"),
        chemicals=_answer(questionnaire, "chem", "No"),
        spa=_answer(questionnaire, "spa", "None"),
        more_info=_answer(questionnaire, "moreinfo", "None"),
        premium_section=PREMIUM_VISION_SECTION if premium else "",
    )


def build_format_prompt(analysis: str, premium: bool) -> str:
    return FORMAT_PROMPT.format(
        analysis=analysis,
        premium_fields=PREMIUM_FORMAT_FIELDS if premium else "",
    )
