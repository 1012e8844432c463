from pathlib import Path

from docworker.backends.nlp.exceptions import TextAnalysisError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(name: str, prompt_dir: Path | None = None) -> str:
    """Load a prompt template by operation name.

    Args:
        name: Template name without extension, e.g. ``"sentiment"``.
        prompt_dir: Directory holding the templates.
                    Defaults to the bundled prompts directory.

    Returns:
        The raw template string with ``{text}`` / ``{language_code}`` placeholders.

    Raises:
        TextAnalysisError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / f"{name}.txt"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise TextAnalysisError(f"Failed to load prompt template '{name}': {exc}") from exc
