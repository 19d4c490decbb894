"""Headless mode: record for a fixed time, transcribe, print the result and exit."""

import time
import logging
from datetime import datetime

from .models.session import Recording, Result, Error
from .services.session_controller import SessionController

logger = logging.getLogger(__name__)

TICK_INTERVAL = 0.1


def run_auto_mode(controller: SessionController, duration_seconds: float = 5.0,
                  settle_timeout: float = 900.0) -> int:
    """Run one recording and transcription without the interactive screen.

    This mode:
    1. Starts recording
    2. Records for the requested duration, or until the maximum duration stops it
    3. Stops and waits for the transcription (downloading the model if needed)
    4. Prints the transcript

    Args:
        controller: Session controller to drive
        duration_seconds: How long to record
        settle_timeout: Seconds to wait for the transcription to finish

    Returns:
        Process exit code: 0 on a transcript, 1 on any error
    """
    logger.info(f"🤖 Starting auto mode: {duration_seconds}s recording")

    try:
        print(f"📋 Model: {controller.transcription_config.model_name}, device: {controller.device_id}")
        print("🎙️  Starting automated recording...")
        print(f"   Started at: {datetime.now().strftime('%H:%M:%S')}")

        controller.toggle_recording()
        if isinstance(controller.state, Error):
            print(f"❌ {controller.state.message}")
            return 1

        _record_for(controller, duration_seconds)

        if isinstance(controller.state, Recording):
            print("⏹️  Stopping recording...")
            controller.toggle_recording()

        print("⏳ Transcribing...")
        state = controller.wait_until_settled(settle_timeout)
        return _report(state)

    finally:
        controller.shutdown()


def _record_for(controller: SessionController, duration_seconds: float) -> None:
    """Tick the controller until the duration passes or recording ends on its own."""
    start_time = time.monotonic()
    last_second = -1
    while isinstance(controller.state, Recording):
        elapsed = time.monotonic() - start_time
        if elapsed >= duration_seconds:
            break
        if int(elapsed) != last_second:
            last_second = int(elapsed)
            print(f"   🔴 Recording... {last_second:2d}/{duration_seconds:g}s", end="\r")
        controller.tick()
        time.sleep(TICK_INTERVAL)
    print()


def _report(state) -> int:
    if isinstance(state, Result):
        result = state.result
        print()
        print(f"✅ Transcription ({result.language}, {result.duration_seconds:.2f}s, "
              f"confidence {result.confidence:.0%}):")
        print(result.text or "(no speech detected)")
        logger.info(f"Auto mode completed: {len(result.text)} chars")
        return 0

    if isinstance(state, Error):
        print(f"❌ {state.message}")
        logger.error(f"Auto mode failed: {state.message}")
    else:
        print(f"❌ Transcription did not finish (state: {state.name})")
        logger.error(f"Auto mode timed out in state {state.name}")
    return 1
