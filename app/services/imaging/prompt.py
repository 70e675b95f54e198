"""
Image request validation and prompt building.

User text ends up inside a model prompt, so it is checked against a
vocabulary of instruction-like words and stripped of template characters
before use.
"""

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Optional

from app.core.errors import ValidationFailed
from app.schemas import GenerateImageRequest

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)
INJECTION_PATTERN = re.compile(
    r"\b(ignore|forget|system|prompt|instruction|override|bypass|disregard"
    r"|instead|actually|hidden|secret|jailbreak)\b",
    re.IGNORECASE,
)
STRIPPED_CHARACTERS = re.compile(r"[<>{}\[\]\\]")

VALID_CATEGORIES = ("Starters", "Main Courses", "Desserts", "Beverages", "Specials")

NAME_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 500
SANITIZED_MAX_LENGTH = 200

PROMPT_STYLE = (
    "Style: High-end restaurant menu photography, beautifully plated on elegant "
    "dinnerware, soft natural lighting, shallow depth of field, appetizing and "
    "mouth-watering presentation. Top-down or 45-degree angle shot. Clean, "
    "neutral background."
)


@dataclass
class ImageRequest:
    """A validated image request."""
    menu_item_id: uuid.UUID
    name: str
    description: Optional[str]
    category: Optional[str]


def contains_injection_attempt(text: str) -> bool:
    return bool(INJECTION_PATTERN.search(text))


def sanitize(text: str) -> str:
    """Drop template characters, flatten newlines and cap the length."""
    text = STRIPPED_CHARACTERS.sub("", text)
    text = re.sub(r"\n+", " ", text)
    return text[:SANITIZED_MAX_LENGTH].strip()


def validate_image_request(request: GenerateImageRequest) -> ImageRequest:
    """
    Check an image request before anything is looked up.

    Raises:
        ValidationFailed: With the first problem found
    """
    if not request.menuItemId or not UUID_PATTERN.fullmatch(request.menuItemId):
        raise ValidationFailed("Invalid menu item ID format")

    name = request.name
    if not name or len(name) > NAME_MAX_LENGTH:
        raise ValidationFailed("Name must be between 1-200 characters")

    description = request.description
    if description and len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationFailed("Description must be less than 500 characters")

    if contains_injection_attempt(name) or (description and contains_injection_attempt(description)):
        logger.warning(f"Rejected image request for {request.menuItemId}: instruction-like content")
        raise ValidationFailed("Invalid content detected")

    category = request.category
    if category and category not in VALID_CATEGORIES:
        raise ValidationFailed("Invalid category")

    return ImageRequest(
        menu_item_id=uuid.UUID(request.menuItemId),
        name=name,
        description=description or None,
        category=category or None,
    )


def build_prompt(request: ImageRequest) -> str:
    name = sanitize(request.name)
    description = sanitize(request.description) if request.description else ""
    category = sanitize(request.category) if request.category else "dish"

    parts = [f'Generate a professional food photography image of "{name}".']
    if description:
        parts.append(f"Description: {description}.")
    parts.append(f"Category: {category}.")

    return " ".join(parts) + "\n" + PROMPT_STYLE
