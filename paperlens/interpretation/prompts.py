"""
Prompt templates for the interpretation pipeline.

User templates mark the insertion point with {text}. Templates are filled
with str.replace rather than str.format because user-written prompts often
contain other braces.
"""

TEXT_PLACEHOLDER = "{text}"

CHUNK_SUMMARY_PROMPT = """Write a concise summary of the following excerpt from an academic paper. The summary should:
1. Capture the key information and main arguments
2. Keep the logical structure intact
3. Stay within {max_chars} characters
4. Be clearly formatted

Paper excerpt:
{text}

Return only the summary itself, without a "Summary:" prefix."""

# Wraps the user's template when it is applied to section summaries
# instead of the paper itself
REDUCE_PROMPT_WRAPPER = """Based on the following section-by-section summaries, give a comprehensive professional interpretation of the whole paper:

{template}

Note: the content above consists of summaries of the paper's parts. Analyse the paper as a whole from these summaries, focusing on its overall structure, the logical relations between its parts, and its core contributions."""

SUMMARY_SECTION_HEADER = "=== Section {number} summary ==="


def fill_template(template: str, text: str) -> str:
    """Insert text at the {text} placeholder, or append it when there is none."""
    if TEXT_PLACEHOLDER in template:
        return template.replace(TEXT_PLACEHOLDER, text)
    return f"{template}\n\n{text}"


def build_chunk_summary_prompt(chunk_text: str, max_chars: int) -> str:
    return CHUNK_SUMMARY_PROMPT.replace("{max_chars}", str(max_chars)).replace(TEXT_PLACEHOLDER, chunk_text)


def build_reduce_template(template: str) -> str:
    """Wrap a user template for the cross-chunk synthesis; {text} stays in place."""
    if TEXT_PLACEHOLDER not in template:
        template = f"{template}\n\n{TEXT_PLACEHOLDER}"
    return REDUCE_PROMPT_WRAPPER.replace("{template}", template)


def combine_summaries(summaries) -> str:
    """Join per-chunk summaries (successful or sentinel) under numbered section labels."""
    return "\n\n".join(
        f"{SUMMARY_SECTION_HEADER.format(number=summary.index + 1)}\n{summary.text}"
        for summary in summaries
    )
