# Path: inkfinder/search/responses.py
# Purpose: Render deterministic natural-language summaries of search outcomes.
# Layer: inkfinder/search.
# Details: Templates are keyed by intent tag and whether anything matched; only the count is consulted.

from __future__ import annotations

from inkfinder.models.domain import (
    BodyPartIntent,
    ExclusionIntent,
    KeywordIntent,
    PathIntent,
    SearchIntent,
    SimilarityIntent,
)


def _images(count: int) -> str:
    return f"{count} image" if count == 1 else f"{count} images"


def _verb(count: int) -> str:
    return "is" if count == 1 else "are"


def render(intent: SearchIntent, result_count: int) -> str:
    """Describe ``result_count`` results for ``intent``."""

    if result_count == 0:
        if isinstance(intent, KeywordIntent):
            return f'I couldn\'t find any images matching "{intent.term}". Try different keywords or check for typos.'
        if isinstance(intent, BodyPartIntent):
            return (
                f"I couldn't find any images with tattoos on the {intent.part}. "
                "Try searching for a different body part."
            )
        if isinstance(intent, PathIntent):
            return (
                f'I couldn\'t find any images in the path containing "{intent.fragment}". '
                "Try a different folder name."
            )
        if isinstance(intent, ExclusionIntent):
            return "I couldn't find any images without tattoos in our database."
        if isinstance(intent, SimilarityIntent):
            return "I couldn't find any images similar to the one you specified. Try lowering the similarity threshold."
        return "I couldn't find any matching images. Try refining your search."

    if isinstance(intent, KeywordIntent):
        return f'I found {_images(result_count)} matching "{intent.term}".'
    if isinstance(intent, BodyPartIntent):
        return f"Here {_verb(result_count)} {_images(result_count)} with tattoos on the {intent.part}."
    if isinstance(intent, PathIntent):
        return f'I found {_images(result_count)} in the path containing "{intent.fragment}".'
    if isinstance(intent, ExclusionIntent):
        return f"Here {_verb(result_count)} {_images(result_count)} without tattoos."
    if isinstance(intent, SimilarityIntent):
        return f"I found {_images(result_count)} similar to the one you specified."
    return f"Here {_verb(result_count)} {result_count} matching image{'' if result_count == 1 else 's'}."


def render_failure(intent: SearchIntent) -> str:
    """Explain that the search could not run, as opposed to finding nothing."""

    return "I couldn't run that image search right now because the image index is unavailable. Please try again shortly."


def render_clarification(intent: SearchIntent) -> str:
    """Ask for the parameter an ambiguous intent is missing."""

    if isinstance(intent, SimilarityIntent):
        return (
            "Which image should I compare against? Give me its path "
            '(for example "similar to local:photos/arm.jpg") or upload the image.'
        )
    if isinstance(intent, BodyPartIntent):
        return "Which body part should I look for? For example: arm, leg, back, chest or neck."
    if isinstance(intent, PathIntent):
        return 'Which folder should I search? For example: "images in folder summer2023".'
    if isinstance(intent, KeywordIntent):
        return 'What should I search for? Try a keyword such as "rose" or "faded color".'
    return "Could you tell me a bit more about the images you are looking for?"
