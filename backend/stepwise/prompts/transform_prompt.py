SYSTEM_ROLE = "You are a helpful math assistant."


def initial_prompt(sentence: str) -> str:
    """Prompt asking the model to turn a spoken-style sentence into LaTeX."""
    return f"""{SYSTEM_ROLE} Your task is to convert a natural language sentence describing a mathematical equation into a valid LaTeX format.
Sentence: "{sentence}"
Return ONLY the resulting equation in valid LaTeX format. Do not include any explanation, text, or enclosing characters like '$'. For example, if the sentence is "x squared plus y squared equals r squared", return "x^2 + y^2 = r^2"."""


def refine_prompt(previous_equation: str, command: str) -> str:
    """Prompt asking the model to apply one algebraic command to an equation."""
    return f"""{SYSTEM_ROLE} Your task is to perform an algebraic manipulation on a given LaTeX equation based on a natural language command.
Previous equation: "{previous_equation}"
Command: "{command}"
Return ONLY the resulting new equation in valid LaTeX format. Do not include any explanation, text, or enclosing characters like '$'. For example, if the result is 'x=5', return exactly that."""
