"""Utilities for importing offline challenges from a human-friendly text file.

File format (blocks separated by a line containing only '---'):

    TOPIC: Topic name
    DIFFICULTY: Novice|Intermediate|Expert   (optional - omit for any level)
    Q: Question text. Additional lines until the next marker are part of it.
    CODE:
    int main(void) {
        return 0;
    }
    ANSWER: 0                 (short answer challenges)
    EXPLANATION: Why the answer is correct.

Multiple choice blocks replace ANSWER with four options and a CORRECT letter,
placed before CODE:

    A: First option
    B: Second option
    C: Third option
    D: Fourth option
    CORRECT: A|B|C|D

Lines inside CODE keep their indentation and blank lines; every other
section is stripped. CODE only ends at a keyword marker (ANSWER:,
EXPLANATION:, ...), so C labels such as `a:` stay part of the snippet.
Blocks are split on '---' only so code may contain empty lines.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from duel_app.core.errors import ChallengeBankError, MalformedChallengeError
from duel_app.core.models import Challenge, ChallengeKind, Difficulty
from duel_app.core.services.challenge_source import validate_challenge


@dataclass(frozen=True, slots=True)
class BankEntry:
    """A challenge from the bank plus the difficulty it is meant for."""

    challenge: Challenge
    difficulty: Difficulty | None = None


_OPTION_ORDER = ["A", "B", "C", "D"]
_HEADERS = ("TOPIC:", "DIFFICULTY:", "Q:", "CODE:", "ANSWER:", "CORRECT:", "EXPLANATION:")


def load_challenges_from_file(file_path: Path) -> list[BankEntry]:
    text = file_path.read_text(encoding="utf-8")
    entries = parse_challenge_text(text)
    if not entries:
        raise ChallengeBankError(f"Challenge file {file_path} did not contain any challenges.")
    return entries


def parse_challenge_text(text: str) -> list[BankEntry]:
    blocks: list[list[str]] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        if raw_line.strip() == "---":
            blocks.append(current_block)
            current_block = []
            continue
        current_block.append(raw_line)
    blocks.append(current_block)

    entries: list[BankEntry] = []
    for index, block in enumerate(blocks, start=1):
        if any(line.strip() for line in block):
            entries.append(_parse_block(block, index))
    return entries


def _parse_block(lines: list[str], block_number: int) -> BankEntry:
    sections: dict[str, list[str]] = {}
    current_section: str | None = None

    for raw_line in lines:
        line = raw_line.strip()
        header = _match_header(line, allow_options=current_section != "CODE")
        if header is not None:
            key, value = header
            sections[key] = [value] if value else []
            current_section = key
            continue

        if current_section == "CODE":
            sections["CODE"].append(raw_line.rstrip())
            continue
        if not line:
            continue
        if current_section is None:
            raise ChallengeBankError(
                f"Block {block_number}: text outside of a known section: '{line}'."
            )
        sections[current_section].append(line)

    return BankEntry(
        challenge=_build_challenge(sections, block_number),
        difficulty=_parse_difficulty(sections, block_number),
    )


def _match_header(line: str, allow_options: bool = True) -> tuple[str, str] | None:
    upper = line.upper()
    for header in _HEADERS:
        if upper.startswith(header):
            return header[:-1], line[len(header):].strip()
    if allow_options and len(line) >= 2 and line[0].upper() in _OPTION_ORDER and line[1] == ":":
        return line[0].upper(), line[2:].strip()
    return None


def _joined(sections: dict[str, list[str]], key: str) -> str:
    return "\n".join(sections.get(key, [])).strip()


def _parse_difficulty(sections: dict[str, list[str]], block_number: int) -> Difficulty | None:
    raw_value = _joined(sections, "DIFFICULTY")
    if not raw_value:
        return None
    for difficulty in Difficulty:
        if difficulty.value.lower() == raw_value.lower():
            return difficulty
    raise ChallengeBankError(
        f"Block {block_number}: DIFFICULTY must be Novice, Intermediate or Expert."
    )


def _build_challenge(sections: dict[str, list[str]], block_number: int) -> Challenge:
    question = _joined(sections, "Q")
    if not question:
        raise ChallengeBankError(f"Block {block_number}: question text missing (Q: ...)")
    topic = _joined(sections, "TOPIC") or "General"

    option_letters = [letter for letter in _OPTION_ORDER if letter in sections]
    if option_letters:
        if len(option_letters) != 4:
            raise ChallengeBankError(
                f"Block {block_number}: multiple choice needs exactly four options (A-D)."
            )
        options = tuple(_joined(sections, letter) for letter in _OPTION_ORDER)
        correct_letter = _joined(sections, "CORRECT").upper()
        if correct_letter not in _OPTION_ORDER:
            raise ChallengeBankError(f"Block {block_number}: CORRECT must be one of A, B, C, or D.")
        kind = ChallengeKind.MULTIPLE_CHOICE
        correct_answer = options[_OPTION_ORDER.index(correct_letter)]
    else:
        options = ()
        kind = ChallengeKind.SHORT_ANSWER
        correct_answer = _joined(sections, "ANSWER")
        if not correct_answer:
            raise ChallengeBankError(f"Block {block_number}: ANSWER missing.")

    challenge = Challenge(
        id=f"bank-{block_number}",
        topic=topic,
        question=question,
        code_snippet="\n".join(sections.get("CODE", [])).strip("\n"),
        correct_answer=correct_answer,
        explanation=_joined(sections, "EXPLANATION"),
        kind=kind,
        options=options,
    )
    try:
        return validate_challenge(challenge)
    except MalformedChallengeError as exc:
        raise ChallengeBankError(f"Block {block_number}: {exc}") from exc
