"""
Main Entry Point for the Drowsiness Fusion demo runner

Wires the external collaborators around the fusion engine:
- camera_utils.py: camera capture into a freshest-frame slot
- face_detector.py: MediaPipe landmarks -> FrameObservation
- state_machine.py: per-frame fusion -> DrowsinessState
- escalator.py: countdown and dispatch of confirmed alerts
- alerter.py / supabase_logger.py: alert transports and cloud logging

No classifier model is installed by the runner, so eye closure comes from
the detector's EAR-based openness estimate.

Run with: python -m drowsiness_fusion.main
"""

import argparse
import logging
import threading
import time

import cv2

from .alerter import BeepAlertDispatcher, CompositeAlertDispatcher, TelegramAlertDispatcher
from .camera_utils import LatestFrameSlot, open_camera
from .escalator import AlertEscalator
from .face_detector import FaceDetector
from .state_machine import DrowsinessStateMachine
from .supabase_logger import SupabaseLogger

logger = logging.getLogger(__name__)


def _capture_loop(cap, slot, stop_event):
    """Read frames until stopped; re-open the camera when it appears stuck."""
    consecutive_failures = 0
    while not stop_event.is_set():
        ret, frame = cap.read()
        if not ret or frame is None or frame.size == 0:
            consecutive_failures += 1
            # Few transient failures: silently retry
            if consecutive_failures <= 20:
                time.sleep(0.01 if consecutive_failures <= 5 else 0.05)
                continue
            logger.warning("Camera appears stuck, attempting to re-open...")
            cap.release()
            time.sleep(0.5)
            try:
                cap = open_camera()
            except RuntimeError as e:
                logger.error("Failed to re-open camera: %s", e)
                break
            consecutive_failures = 0
            continue

        consecutive_failures = 0
        slot.put(frame, time.monotonic())
    cap.release()
    slot.close()


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Driver drowsiness fusion demo")
    parser.add_argument("--no-calibration", action="store_true", help="Skip the initial calibration window")
    parser.add_argument("--no-beep", action="store_true", help="Disable the audible alarm")
    parser.add_argument("--telegram", action="store_true", help="Also send alerts through Telegram")
    parser.add_argument("--supabase", action="store_true", help="Log snapshots and alerts to Supabase")
    parser.add_argument("--verbose", action="store_true", help="Per-frame debug logging")
    return parser.parse_args(argv)


def main(argv=None):
    """Main detection loop."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    print("Starting Driver Drowsiness Fusion (demo runner)...")
    print("=" * 70)

    cap = open_camera()
    detector = FaceDetector()
    engine = DrowsinessStateMachine(calibrate_on_start=not args.no_calibration, verbose=args.verbose)

    dispatchers = []
    if not args.no_beep:
        dispatchers.append(BeepAlertDispatcher())
    if args.telegram:
        dispatchers.append(TelegramAlertDispatcher())
    cloud = None
    if args.supabase:
        cloud = SupabaseLogger()
        cloud.start_session()
        dispatchers.append(cloud)
    escalator = AlertEscalator(CompositeAlertDispatcher(dispatchers))

    slot = LatestFrameSlot()
    stop_event = threading.Event()
    capture = threading.Thread(target=_capture_loop, args=(cap, slot, stop_event), name="capture", daemon=True)
    capture.start()

    frame_count = 0
    start_time = time.time()
    try:
        while True:
            frame, timestamp = slot.take(timeout=1.0)
            if frame is None:
                if not capture.is_alive():
                    break
                continue

            rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            state = engine.process(rgb, detector, timestamp)
            escalator.observe(state, timestamp)
            if cloud is not None:
                cloud.log_snapshot(state, engine.eye_threshold, engine.yawn_threshold, timestamp)

            # Print metrics periodically
            frame_count += 1
            if frame_count % 30 == 0:
                elapsed = time.time() - start_time
                fps = frame_count / elapsed if elapsed > 0 else 0
                alerts = ",".join(kind.value for kind in state.active_alerts()) or "None"
                print(
                    f"FPS: {fps:.1f} | Eye: {state.eye_score:.2f} (thr {engine.eye_threshold:.2f}) | "
                    f"Yawns: {state.yawn_count} | Lost: {state.lost_face_count} | "
                    f"Alerts: {alerts} | Escalation: {escalator.state.value} | Dropped: {slot.dropped}"
                    + (" | calibrating" if engine.calibrating else "")
                )
    except KeyboardInterrupt:
        pass
    finally:
        stop_event.set()
        capture.join(timeout=2.0)
        escalator.close()
        detector.close()
        engine.close()
        if cloud is not None:
            cloud.end_session(engine.state.lost_face_count)
        print("Shutdown complete.")


if __name__ == "__main__":
    main()
