"""Prompt templates and output schemas sent to the oracle."""

from __future__ import annotations

from dataclasses import dataclass

from meowtion.libs.oracle import FieldType, OutputSchema, SchemaField


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    template: str

    def render(self, **context: object) -> str:
        return self.template.format(**context)


CANDIDATE_PROMPT = PromptTemplate(
    name="candidate_comparison",
    template=(
        "You are a visual comparison expert helping identify individual campus cats.\n"
        "Decide whether the user image shows the exact same cat as the known cat "
        "named \"{cat_name}\". Breed resemblance alone is not enough.\n"
        "1. List the distinctive features that stay consistent across every "
        "reference image of {cat_name}: coat colour and pattern, patches and "
        "markings, eye colour, ear and face shape, coat length, body build.\n"
        "2. List the same kinds of features visible in the user image.\n"
        "3. Separate the features that match from the features that conflict. "
        "Cite concrete visual evidence (for example \"white blaze on the left "
        "side of the muzzle\"), never vague impressions.\n"
        "4. Score similarity from 0.0 to 1.0. Penalise heavily any conflict in "
        "markings, coat length or body structure; a single clear conflict in "
        "markings should keep the score below 0.5.\n"
        "Put the matching features in matchedFeatures, the conflicting ones in "
        "mismatchedFeatures, and a one-sentence justification in summary. "
        "Set catName to \"{cat_name}\". Return only JSON in the requested format."
    ),
)

BREED_PROMPT = PromptTemplate(
    name="breed_identification",
    template=(
        "You are an expert in cat breeds. Analyze this image and identify the "
        "breed of the cat.\n"
        "- If a cat is clearly visible, identify its breed.\n"
        "- Provide a confidence score from 0.0 to 1.0 for your identification.\n"
        "- Give a brief, one-paragraph description of the breed's key traits.\n"
        "- If the image does not contain a cat, set isCat to false, breed to "
        "'Not a cat', confidence to 0 and briefly describe what is in the image.\n"
        "- Return the analysis in the specified JSON format."
    ),
)

USER_IMAGE_LABEL = "--- User image ---"
REFERENCE_LABEL_TEMPLATE = "--- Reference images for {cat_name} ---"


CANDIDATE_SCHEMA = OutputSchema(
    name="candidate_evaluation",
    fields=(
        SchemaField("catName", FieldType.STRING, "Name of the known cat being compared."),
        SchemaField(
            "similarity",
            FieldType.NUMBER,
            "Similarity between the user cat and the known cat from 0.0 to 1.0.",
        ),
        SchemaField(
            "matchedFeatures",
            FieldType.STRING_ARRAY,
            "Concrete visual features shared by the user cat and the known cat.",
        ),
        SchemaField(
            "mismatchedFeatures",
            FieldType.STRING_ARRAY,
            "Concrete visual features that conflict between the two cats.",
        ),
        SchemaField("summary", FieldType.STRING, "One-sentence justification."),
    ),
)

BREED_SCHEMA = OutputSchema(
    name="breed_analysis",
    fields=(
        SchemaField("isCat", FieldType.BOOLEAN, "Confirms if a cat is present in the image."),
        SchemaField(
            "breed",
            FieldType.STRING,
            "The identified cat breed. If not a cat, this should be 'Not a cat'.",
        ),
        SchemaField(
            "confidence",
            FieldType.NUMBER,
            "Confidence score from 0.0 to 1.0. If not a cat, this should be 0.",
        ),
        SchemaField(
            "description",
            FieldType.STRING,
            "A short, engaging paragraph describing the breed's characteristics "
            "and temperament. If not a cat, briefly describe what is in the image.",
        ),
    ),
)
