"""Main application entry point for voicetui."""

import sys
import argparse
import logging
from pathlib import Path
from typing import Optional

from voicetui import __version__
from voicetui.audio.capture import AbstractCaptureSource, AudioCapture, SyntheticCapture
from voicetui.audio.devices import list_input_devices
from voicetui.audio.recorder import RecordingSession
from voicetui.exceptions import ConfigError, VoiceTuiError
from voicetui.services.session_controller import SessionController
from voicetui.services.state_publisher import StatePublisher
from voicetui.storage.export import TranscriptExporter
from voicetui.transcription.base import AbstractTranscriptionBackend
from voicetui.transcription.engine import TranscriptionEngine
from voicetui.transcription.models import ModelAssetStore
from voicetui.transcription.synthetic_backend import SyntheticBackend
from voicetui.transcription.whisper_backend import WhisperCppBackend

from .config import VoiceTuiConfig

logger = logging.getLogger(__name__)


def create_capture(config: VoiceTuiConfig) -> AbstractCaptureSource:
    backend = config.get('audio.backend', 'pyaudio')
    if backend == 'pyaudio':
        return AudioCapture(chunk_size=int(config.get('audio.chunk_size', 1600)))
    if backend == 'synthetic':
        return SyntheticCapture()
    raise ConfigError(f"Unknown audio backend '{backend}' (expected pyaudio or synthetic)")


def create_backend(config: VoiceTuiConfig) -> AbstractTranscriptionBackend:
    backend = config.get('transcription.backend', 'whisper_cpp')
    if backend == 'whisper_cpp':
        return WhisperCppBackend(
            binary=config.get('transcription.whisper_binary', 'whisper-cli'),
            timeout_seconds=float(config.get('transcription.timeout_seconds', 600)),
        )
    if backend == 'synthetic':
        return SyntheticBackend()
    raise ConfigError(f"Unknown transcription backend '{backend}' (expected whisper_cpp or synthetic)")


def build_controller(config: VoiceTuiConfig) -> SessionController:
    """Wire capture, recorder, model store, engine and publisher from configuration."""
    store = ModelAssetStore(
        models_dir=config.get_models_directory(),
        base_url=config.get('models.base_url'),
    )
    backend = create_backend(config)
    if not backend.initialize():
        logger.warning(f"Transcription backend {type(backend).__name__} is not ready")

    recorder = RecordingSession(create_capture(config))
    engine = TranscriptionEngine(store, backend)

    return SessionController(
        recorder,
        engine,
        recording_options=config.get_recording_options(),
        transcription_config=config.get_transcription_config(),
        publisher=StatePublisher(),
        exporter=TranscriptExporter(config.get_export_directory()),
    )


class Application:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = VoiceTuiConfig(config_path)
        # Command line level overrides config
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))
        self.controller: Optional[SessionController] = None

    def init(self, model: Optional[str] = None, device: Optional[str] = None):
        logger.info("Initializing services...")
        if model:
            self.config.set('transcription.model', model)
        if device:
            self.config.set('audio.device', device)

        options = self.config.get_recording_options()
        logger.info(f"Audio settings: {options.sample_rate}Hz, {options.channels} channels, "
                    f"{options.bit_depth}-bit, max {options.max_duration_seconds}s")

        self.controller = build_controller(self.config)
        # Fail early on an unknown model name
        self.controller.engine.store.descriptor(self.controller.transcription_config.model_name)

    def run_interactive(self) -> None:
        from voicetui.ui.recorder_screen import RecorderScreen

        RecorderScreen(self.controller).run()

    def run_auto(self, duration: float) -> int:
        from voicetui.auto_mode import run_auto_mode

        return run_auto_mode(self.controller, duration)

    def cleanup(self) -> None:
        if self.controller:
            self.controller.shutdown()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'voicetui.log')
    console_output = config.get('logging.console_output', False)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - the TUI owns the screen, so warnings and above only
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("=" * 50)
    logger.info("voicetui starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def print_devices() -> None:
    """Print the selectable input devices with the id accepted by --device."""
    for device in list_input_devices():
        marker = " (default)" if device.is_default else ""
        print(f"  {device.id:>8}  {device.name}{marker}")


def main(argv: Optional[list] = None) -> None:
    """Main entry point for voicetui."""
    parser = argparse.ArgumentParser(
        description="voicetui - record from the microphone and transcribe locally with Whisper",
        epilog="Keys: SPACE=Record/Stop, N=New, C=Copy, S=Save, M=Next model, D=Next device, Q=Quit"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )

    parser.add_argument(
        "--model",
        type=str,
        help="Whisper model name, e.g. tiny, base.en, small (overrides config)"
    )

    parser.add_argument(
        "--device",
        type=str,
        help="Input device: 'default' or a PortAudio device index (overrides config)"
    )

    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List audio input devices and exit"
    )

    parser.add_argument(
        "--auto",
        action="store_true",
        help="Run in automatic mode: record for the given duration, transcribe, print and exit"
    )

    parser.add_argument(
        "--duration",
        type=float,
        default=5.0,
        help="Duration in seconds for auto mode recording (default: 5)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"voicetui v{__version__}"
    )

    args = parser.parse_args(argv)

    if args.list_devices:
        print_devices()
        return

    app = None
    try:
        app = Application(args.config, args.log_level)
        app.init(model=args.model, device=args.device)
        if args.auto:
            exit_code = app.run_auto(args.duration)
            if exit_code:
                sys.exit(exit_code)
        else:
            app.run_interactive()
    except KeyboardInterrupt:
        if app:
            app.cleanup()
        print("\n👋 Goodbye!")
    except (VoiceTuiError, FileNotFoundError) as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
