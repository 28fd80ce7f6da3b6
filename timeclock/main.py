# timeclock/main.py
"""
TimeClock - Main Entry Point.

Wires the camera, face models, employee registry, cooldown and time-clock
sink together. The logic lives in the sub-packages:
- core/: settings, errors, camera, TFLite
- recognition/: extractor, resolver
- processing/: cooldown, detection loop, enrollment, attendance
- data/: SQLite storage, registry

Usage:
    python -m timeclock.main                         # run the clock (headless)
    python -m timeclock.main run --threshold 0.55    # custom threshold
    python -m timeclock.main enroll "Maria Souza" --role cashier
    python -m timeclock.main list
    python -m timeclock.main remove <employee-id>
    python -m timeclock.main history --date 2026-10-19
"""
import sys
import time
import logging
import argparse

from .core import settings, create_camera, create_extractor
from .core.errors import ConfigurationError, TimeClockError
from .data import EmployeeRegistry, get_records
from .processing import CooldownController, DetectionLoop, TimeClock, capture_and_enroll

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Console logging, plus a log file on the Pi."""
    handlers = [logging.StreamHandler()]
    if settings.IS_PI:
        handlers.append(logging.FileHandler('timeclock.log', encoding='utf-8'))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog='timeclock',
        description='TimeClock - Face Recognition Time Clock',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m timeclock.main run --cooldown 5
  python -m timeclock.main enroll "Maria Souza" --department Sales
  python -m timeclock.main history --date 2026-10-19
        """
    )

    parser.add_argument(
        '--db',
        metavar='PATH',
        help=f'SQLite database (default: {settings.DB_PATH})'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose logging'
    )

    sub = parser.add_subparsers(dest='command')

    # run
    run_p = sub.add_parser('run', help='Run the recognition loop (default)')
    run_p.add_argument(
        '--threshold', '-t',
        type=float,
        metavar='VALUE',
        help=f'Recognition threshold (default: {settings.RECOGNITION_THRESHOLD})'
    )
    run_p.add_argument(
        '--cooldown',
        type=float,
        metavar='SECONDS',
        help=f'Debounce window (default: {settings.COOLDOWN_SECONDS}s)'
    )
    run_p.add_argument(
        '--interval',
        type=float,
        metavar='SECONDS',
        help=f'Minimum time between attempts (default: {settings.DETECTION_INTERVAL}s)'
    )
    run_p.add_argument(
        '--manual',
        action='store_true',
        help='Only show recognitions, do not write time records'
    )
    _add_camera_arguments(run_p)

    # enroll
    enroll_p = sub.add_parser('enroll', help='Capture a face and enroll an employee')
    enroll_p.add_argument('name', help='Employee name')
    enroll_p.add_argument('--role', default='', help='Job role')
    enroll_p.add_argument('--department', help='Department')
    enroll_p.add_argument(
        '--attempts',
        type=int,
        default=10,
        help='Capture attempts before giving up (default: 10)'
    )
    _add_camera_arguments(enroll_p)

    # list / remove / history
    sub.add_parser('list', help='List enrolled employees')
    remove_p = sub.add_parser('remove', help='Remove an employee')
    remove_p.add_argument('employee_id', help='Employee id (see list)')
    history_p = sub.add_parser('history', help='Show time records')
    history_p.add_argument('--date', metavar='YYYY-MM-DD', help='Only this day')
    history_p.add_argument('--employee', metavar='ID', help='Only this employee')

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = 'run'
    return args


def _add_camera_arguments(parser):
    parser.add_argument(
        '--camera', '-c',
        type=int,
        metavar='ID',
        help=f'Camera device ID (default: {settings.CAMERA_ID})'
    )
    parser.add_argument(
        '--resolution', '-r',
        type=str,
        metavar='WxH',
        help=f'Camera resolution (default: {settings.CAMERA_WIDTH}x{settings.CAMERA_HEIGHT})'
    )


def apply_arguments(args):
    """Apply command line arguments to settings. Returns a list of changes."""
    changes = []

    if args.db:
        settings.DB_PATH = args.db
        changes.append(f"Database: {args.db}")

    if getattr(args, 'threshold', None) is not None:
        settings.RECOGNITION_THRESHOLD = args.threshold
        changes.append(f"Threshold: {args.threshold}")
    if getattr(args, 'cooldown', None) is not None:
        settings.COOLDOWN_SECONDS = args.cooldown
        changes.append(f"Cooldown: {args.cooldown}s")
    if getattr(args, 'interval', None) is not None:
        settings.DETECTION_INTERVAL = args.interval
        changes.append(f"Interval: {args.interval}s")
    if getattr(args, 'manual', False):
        settings.AUTO_RECORD = False
        changes.append("Auto record: OFF")

    if getattr(args, 'camera', None) is not None:
        settings.CAMERA_ID = args.camera
        changes.append(f"Camera: {args.camera}")
    if getattr(args, 'resolution', None):
        try:
            w, h = map(int, args.resolution.lower().split('x'))
        except ValueError:
            raise ConfigurationError(
                f"Invalid resolution: {args.resolution} (use WxH, e.g. 640x480)"
            )
        settings.CAMERA_WIDTH = w
        settings.CAMERA_HEIGHT = h
        changes.append(f"Resolution: {w}x{h}")

    settings.validate()
    return changes


def open_camera():
    camera = create_camera(
        device_id=settings.CAMERA_ID,
        width=settings.CAMERA_WIDTH,
        height=settings.CAMERA_HEIGHT,
        is_pi=settings.IS_PI
    )
    if not camera.open():
        raise TimeClockError("camera not available")
    return camera


def run_clock(registry: EmployeeRegistry):
    """Run the detection loop until Ctrl+C."""
    camera = open_camera()
    try:
        extractor = create_extractor()
        if not extractor.is_ready:
            logger.warning("⚠️ Face models not ready, recognition will retry")

        cooldown = CooldownController(
            window=settings.COOLDOWN_SECONDS,
            refire_on_expiry=settings.COOLDOWN_REFIRE_ON_EXPIRY
        )
        clock = TimeClock(
            db_path=registry.db_path,
            auto_record=settings.AUTO_RECORD,
            pause_seconds=settings.RECORD_PAUSE_SECONDS,
            record_gap_seconds=settings.RECORD_GAP_SECONDS
        )
        clock.set_consume_callback(cooldown.consume)

        loop = DetectionLoop(
            frame_source=camera,
            extractor=extractor,
            registry=registry.snapshot,
            on_recognized=clock.on_identity_recognized,
            cooldown=cooldown,
            threshold=settings.RECOGNITION_THRESHOLD,
            min_interval=settings.DETECTION_INTERVAL
        )

        n = len(registry.snapshot())
        if n == 0:
            logger.warning("⚠️ No employees enrolled yet, use 'enroll' first")
        logger.info(f"CONFIG: THRESHOLD={settings.RECOGNITION_THRESHOLD}, "
                    f"COOLDOWN={settings.COOLDOWN_SECONDS}s, "
                    f"INTERVAL={settings.DETECTION_INTERVAL}s, "
                    f"AUTO_RECORD={settings.AUTO_RECORD}, EMPLOYEES={n}")

        thread = loop.start()
        last_refresh = time.monotonic()
        stall_reported = False
        try:
            while thread.is_alive():
                time.sleep(0.5)
                now = time.monotonic()

                # --- Hot-reload registry (changes from other processes) ---
                if now - last_refresh >= settings.REGISTRY_REFRESH_INTERVAL:
                    registry.refresh()
                    last_refresh = now

                # --- Watchdog ---
                if loop.is_stalled(settings.EXTRACTION_STALL_SECONDS):
                    if not stall_reported:
                        logger.error(f"❌ Extraction stuck for more than "
                                     f"{settings.EXTRACTION_STALL_SECONDS}s")
                        stall_reported = True
                else:
                    stall_reported = False
        except KeyboardInterrupt:
            print("\n🛑 Stopped (Ctrl+C)")
        finally:
            loop.stop()
            loop.join(timeout=5.0)
    finally:
        camera.release()


def enroll_employee(registry: EmployeeRegistry, args):
    camera = open_camera()
    try:
        extractor = create_extractor()
        identity = capture_and_enroll(
            camera, extractor, registry, args.name,
            role=args.role, department=args.department, attempts=args.attempts
        )
    finally:
        camera.release()
    print(f"✅ Enrolled: {identity.display_name} ({identity.id})")


def list_employees(registry: EmployeeRegistry):
    identities = registry.list_identities()
    print("\n📋 Employees:")
    if not identities:
        print("   (empty)")
    for i, identity in enumerate(identities, 1):
        extra = " / ".join(p for p in (identity.role, identity.department) if p)
        print(f"   {i}. {identity.display_name} [{identity.id}]" + (f" - {extra}" if extra else ""))
    print()


def remove_employee(registry: EmployeeRegistry, employee_id: str) -> bool:
    if registry.remove_identity(employee_id):
        print(f"   ✅ Removed: {employee_id}")
        return True
    print(f"   ❌ Not found: {employee_id}")
    return False


def show_history(registry: EmployeeRegistry, date_str=None, employee_id=None):
    records = get_records(employee_id=employee_id, date_str=date_str, db_path=registry.db_path)
    print("\n🕐 Time records:")
    if not records:
        print("   (empty)")
    for r in records:
        label = "IN " if r['type'] == 'check_in' else "OUT"
        print(f"   {r['timestamp']:%Y-%m-%d %H:%M:%S}  {label}  {r['employee_name']}")
    print()


def main(argv=None) -> int:
    """Main entry point. Returns the process exit code."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    try:
        changes = apply_arguments(args)
        for change in changes:
            logger.debug(f"Override: {change}")

        registry = EmployeeRegistry(settings.DB_PATH)

        if args.command == 'enroll':
            enroll_employee(registry, args)
        elif args.command == 'list':
            list_employees(registry)
        elif args.command == 'remove':
            return 0 if remove_employee(registry, args.employee_id) else 1
        elif args.command == 'history':
            show_history(registry, args.date, args.employee)
        else:
            run_clock(registry)

    except ConfigurationError as e:
        logger.error(f"❌ Configuration error: {e}")
        return 2
    except TimeClockError as e:
        logger.error(f"❌ {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
