"""Duel-related constants shared across the core, sources and server."""

MAX_HEALTH: int = 3

PLAYER_WIN_SCORE: int = 100
AI_WIN_SCORE: int = 100
WRONG_ANSWER_PENALTY: int = 50

BASE_DURATION_MS: float = 20000.0
NOVICE_DURATION_MS: float = 30000.0
EXPERT_DURATION_MS: float = 12000.0
DURATION_JITTER_MS: float = 2500.0
TICK_INTERVAL_MS: float = 100.0
MAX_PROGRESS: float = 100.0

DEFAULT_CHALLENGE_TIMEOUT_SECONDS: float = 20.0

PLAYER_NAME: str = "User"
PLAYER_AVATAR: str = "👤"
OPPONENT_NAME: str = "Gemini Core"
OPPONENT_AVATAR: str = "🤖"

RANDOM_MIX: str = "Random Mix"
TOPICS: tuple[str, ...] = (
    RANDOM_MIX,
    "Variables & Data Types",
    "Operators & Expressions",
    "Control Flow (If/Switch/Loops)",
    "Functions & Recursion",
    "Arrays & Multidimensional Arrays",
    "Pointers & Memory Addressing",
    "Strings & String Library",
    "Structures & Unions",
    "Dynamic Memory Allocation",
    "File Input/Output",
    "Preprocessor Directives",
    "Bitwise Operators",
    "Type Casting & Storage Classes",
    "Function Pointers",
    "Command Line Arguments",
    "Error Handling & Errno",
    "Standard Library Functions",
    "Variadic Functions",
    "Complex Memory Layouts",
)
# Offered to the content provider when the player picked Random Mix.
RANDOM_TOPIC_POOL: tuple[str, ...] = (
    "Basic Syntax",
    "Control Flow",
    "Functions",
    "Pointers",
    "Arrays",
    "Strings",
    "Structs",
    "Unions",
    "Dynamic Memory",
    "Bitwise Ops",
    "Preprocessor",
    "File I/O",
    "Advanced Pointers",
    "Standard Library",
)

RESULT_PLAYER_WIN: str = "Correct! Memory Safe."
RESULT_TIMEOUT: str = "Too Slow! AI compiled first."
RESULT_WRONG_ANSWER: str = "Segmentation Fault (Wrong Answer)"
GAME_OVER_WIN_TITLE: str = "SYSTEM SECURE"
GAME_OVER_WIN_TEXT: str = "All logic vulnerabilities patched."
GAME_OVER_LOSS_TITLE: str = "CRITICAL FAILURE"
GAME_OVER_LOSS_TEXT: str = "AI superiority established."

LOG_CHALLENGE_LOADED: str = "New Challenge loaded: {topic}"
LOG_PLAYER_CORRECT: str = "User submitted correct answer. AI took damage."
LOG_PLAYER_WRONG: str = 'System Error: "{answer}" is incorrect. AI took the round.'
LOG_AI_TIMEOUT: str = "AI solved the challenge first."
LOG_NEXT_ROUND: str = "Round {round_number} started. Generating virtual challenge..."
