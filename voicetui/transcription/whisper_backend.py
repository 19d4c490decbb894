"""whisper.cpp command-line transcription backend."""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from .base import AbstractTranscriptionBackend
from ..exceptions import InferenceError
from ..models.transcription import TranscriptionConfig, TASK_TRANSLATE

logger = logging.getLogger(__name__)


class WhisperCppBackend(AbstractTranscriptionBackend):
    """Runs the whisper.cpp CLI on a WAV file and reads back its text output."""

    def __init__(self, binary: str = "whisper-cli", timeout_seconds: float = 600.0,
                 threads: Optional[int] = None):
        """Initialize whisper.cpp backend.

        Args:
            binary: Name or path of the whisper.cpp CLI executable
            timeout_seconds: Upper bound for one transcription run
            threads: Worker threads passed to whisper.cpp (its default if None)
        """
        self.binary = binary
        self.timeout_seconds = timeout_seconds
        self.threads = threads

    def initialize(self) -> bool:
        path = shutil.which(self.binary)
        if not path:
            logger.warning(
                f"{self.binary} not found in PATH. Install whisper.cpp "
                f"(https://github.com/ggerganov/whisper.cpp) and make sure the CLI is on PATH."
            )
            return False
        logger.info(f"Using whisper.cpp CLI at: {path}")
        return True

    def build_command(self, wav_path: Path, model_path: Path, config: TranscriptionConfig,
                      output_prefix: Path) -> List[str]:
        cmd = [
            self.binary,
            "-m", str(model_path),
            "-f", str(wav_path),
            "-l", config.language_hint or "auto",
            "-otxt",               # Plain text output file
            "-of", str(output_prefix),
            "-np",                 # No progress prints
        ]
        if config.task == TASK_TRANSLATE:
            cmd.append("-tr")
        if self.threads:
            cmd.extend(["-t", str(self.threads)])
        return cmd

    def transcribe_file(self, wav_path: Path, model_path: Path, config: TranscriptionConfig,
                        audio_duration: float = 0.0) -> str:
        output_prefix = wav_path.with_suffix("")
        output_path = output_prefix.with_suffix(".txt")
        cmd = self.build_command(wav_path, model_path, config, output_prefix)
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            subprocess.run(cmd, check=True, capture_output=True, timeout=self.timeout_seconds)
            if not output_path.exists():
                raise InferenceError(f"{self.binary} did not create {output_path}", audio_duration)
            return output_path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise InferenceError(f"whisper.cpp CLI '{self.binary}' not found", audio_duration) from e
        except subprocess.TimeoutExpired as e:
            raise InferenceError(
                f"Transcription timed out after {self.timeout_seconds:.0f}s", audio_duration
            ) from e
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode(errors="replace").strip() if e.stderr else ""
            logger.error(f"whisper.cpp exited with {e.returncode}: {stderr}")
            raise InferenceError(
                f"whisper.cpp exited with code {e.returncode}: {stderr[-200:]}", audio_duration
            ) from e
        except OSError as e:
            raise InferenceError(f"Could not run whisper.cpp: {e}", audio_duration) from e
        finally:
            output_path.unlink(missing_ok=True)
