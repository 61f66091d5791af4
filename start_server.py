#!/usr/bin/env python3
"""
Startup script for the MediaShelf media server
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from config import load_config
from errors import MediaShelfError, PortInUseError
from logger import Colors, setup_logging
from model import CATEGORIES
from server import MediaServer


LOG_KEEP_COUNT = 10


def cleanup_old_logs(log_dir: Path, keep_count: int = LOG_KEEP_COUNT) -> int:
    """
    Delete old log files, keeping only the most recent ones

    Returns:
        Number of deleted files
    """
    log_files = sorted(
        log_dir.glob("mediashelf_*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True
    )

    deleted = 0
    for old_log in log_files[keep_count:]:
        try:
            old_log.unlink()
            deleted += 1
        except OSError:
            # Might still be open by another process
            continue
    return deleted


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="MediaShelf - personal media server for movies, TV shows and music",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --port 3000
  %(prog)s --scan all --thumbnails
  %(prog)s --config ~/mediashelf/config.yaml --scan music --scan-only
        """
    )
    parser.add_argument("--port", type=int, help="Port to run the server on (default: saved settings port)")
    parser.add_argument("--host", type=str, help="Host to bind to (default: from config, 0.0.0.0)")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--scan", choices=list(CATEGORIES) + ["all"],
                        help="Scan a category (or all) before serving")
    parser.add_argument("--thumbnails", action="store_true",
                        help="Generate thumbnails and album covers during the scan")
    parser.add_argument("--scan-only", action="store_true", help="Exit after the scan instead of serving")
    parser.add_argument('--version', action='version', version='%(prog)s 1.0.0')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"{Colors.RED}Configuration error: {e}{Colors.RESET}")
        return 1

    if args.host:
        config.host = args.host
    if args.verbose:
        config.verbose = True

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = config.log_dir / f"mediashelf_{timestamp}.log"
    logger = setup_logging(log_file, config.verbose)
    cleanup_old_logs(config.log_dir)

    try:
        server = MediaServer(config, logger)
    except (OSError, MediaShelfError) as e:
        logger.error(f"Cannot open data directory {config.data_dir}: {e}")
        return 1

    logger.info(f"Data directory: {Colors.CYAN}{config.data_dir}{Colors.RESET}")
    logger.info(f"Log File: {Colors.CYAN}{log_file}{Colors.RESET}")

    if args.scan:
        categories = CATEGORIES if args.scan == "all" else (args.scan,)
        failed = False
        for category in categories:
            result = server.control.scan_media(category, create_thumbnails=args.thumbnails)
            if result.success:
                logger.info(f"{Colors.GREEN}✓ {result.message}{Colors.RESET}")
            else:
                failed = True
                logger.error(f"{Colors.RED}✗ {category} scan failed: {result.error}{Colors.RESET}")
        if args.scan_only:
            return 1 if failed else 0

    try:
        server.serve_forever(args.port)
    except PortInUseError as e:
        logger.error(str(e))
        print(f"\nOptions:")
        print(f"  1. Stop the process using port {e.port}")
        print(f"  2. Use a different port:")
        print(f"     python start_server.py --port {e.port + 1}")
        return 1
    except MediaShelfError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
