"""Claude CLI adapter - subprocess wrapper for plan analysis."""

import logging
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

INSTALL_HINT = "Install with: npm install -g @anthropic-ai/claude-code"


def find_claude_binary() -> str:
    """Locate the claude executable, or raise RuntimeError."""
    path = shutil.which("claude")
    if path is None:
        raise RuntimeError(f"Claude CLI not found. {INSTALL_HINT}")
    return path


class ClaudeCLIService:
    """
    Claude CLI subprocess adapter.

    Implements LLMService protocol. The prompt is passed on stdin so large
    item lists do not hit argument length limits.
    """

    def __init__(
        self,
        cwd: Path | str | None = None,
        timeout: int = 300,  # 5 minutes default
    ):
        self.cwd = Path(cwd) if cwd else None
        self.timeout = timeout

    def generate(self, prompt: str) -> str:
        """Generate text from a prompt. Returns complete response."""
        try:
            proc = subprocess.run(
                [find_claude_binary(), "-p", "-"],
                input=prompt,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise RuntimeError(f"Claude CLI timed out after {self.timeout}s")

        if proc.returncode != 0:
            logger.error(f"Claude CLI failed: {proc.stderr}")
            raise RuntimeError(f"Claude CLI failed: {proc.stderr}")
        return proc.stdout
