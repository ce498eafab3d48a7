import json
import re


def extract_json(text: str) -> dict:
    """
    Extract first valid JSON object from LLM output.
    Returns {} if parsing fails or the payload is not an object.
    """
    if not text or not isinstance(text, str):
        return {}

    try:
        data = json.loads(text, strict=False)
        return data if isinstance(data, dict) else {}
    except Exception:
        pass

    # Try to extract JSON block
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if not match:
        return {}

    try:
        data = json.loads(match.group(0), strict=False)
        return data if isinstance(data, dict) else {}
    except Exception:
        return {}
