"""Deterministic stand-ins for the random source and the human."""


class SequenceBits:
    """``randbits`` stand-in returning queued samples, then zeros."""

    def __init__(self, *samples: int):
        self.samples = list(samples)
        self.calls = 0

    def __call__(self, bits: int) -> int:
        self.calls += 1
        return self.samples.pop(0) if self.samples else 0


class ScriptedAsk:
    """``ask`` stand-in answering prompts from a fixed script."""

    def __init__(self, *answers: str):
        self.answers = list(answers)
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt: {prompt!r}")
        return self.answers.pop(0)
