from __future__ import annotations

_NUMBER_WORDS = {1: "one", 2: "two", 3: "three", 4: "four", 5: "five", 6: "six"}

VIEWS_PROMPT_TEMPLATE = """Generate {count_word} radically different but plausible interpretations of this news story. Each interpretation should reveal a profound 'other way of looking at it' that causes an 'ah-ha!' moment by seeing the same events from a completely unexpected perspective. These should not be conspiracy theories, but rather intelligent alternative frameworks that expose deeper implications, hidden dynamics, or non-obvious future impacts.

Each interpretation should be 2-3 sentences long, be both surprising and logically sound, and reveal a perspective that makes us say 'wow, I hadn't thought of it that way!' Focus on the historical implications or future consequences that aren't immediately apparent from the conventional narrative. Make each interpretation genuinely insightful rather than merely contrarian.

Respond with a VALID JSON array of exactly {count} view objects. Each view MUST have:
- id (unique number)
- title (non-empty string)
- subtitle (optional short string)
- content (non-empty string)
- imageGenerationPrompt (non-empty string describing an image that captures the view's essence)

IMPORTANT: Ensure the JSON is properly formatted and escaped. Use ONLY JSON in the response.

Example format:
[
  {{
    "id": 1,
    "title": "Provocative Perspective",
    "subtitle": "What the headline leaves out",
    "content": "A challenging two-sentence view.",
    "imageGenerationPrompt": "A symbolic representation of the unique perspective"
  }}
]

Source Text: {text}"""


def build_views_prompt(text: str, *, view_count: int = 3, max_chars: int | None = None) -> str:
    article = text.strip()
    if max_chars is not None and len(article) > max_chars:
        article = article[:max_chars].rstrip()
    return VIEWS_PROMPT_TEMPLATE.format(
        count=view_count,
        count_word=_NUMBER_WORDS.get(view_count, str(view_count)),
        text=article,
    )
