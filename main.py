# main.py
import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional, Tuple

import structlog
import yaml

from cavegen.config import ConfigError, load_config
from cavegen.export import render_ascii, save_field_preview, write_obj
from cavegen.logging_utils import setup_logging
from cavegen.mesh.buffers import MeshData
from cavegen.mesh.marching_cubes import CaveMesh3D
from cavegen.session import CaveSession

# --- Paths relative to this script's location ---
SCRIPT_DIR = Path(__file__).parent.resolve()
CONFIG_DIR = SCRIPT_DIR / "config"
CONFIG_FILE = CONFIG_DIR / "cave.yaml"

PROFILES = {"2d": "cave_2d", "3d": "cave_3d"}

log = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a connected cave and extract its mesh."
    )
    parser.add_argument(
        "--profile", choices=sorted(PROFILES), default="2d", help="Which cave profile to run."
    )
    parser.add_argument(
        "--config", type=Path, default=CONFIG_FILE, help=f"YAML profile file (default: {CONFIG_FILE})"
    )
    parser.add_argument("--seed", default=None, help="Seed string (overrides the profile).")
    parser.add_argument(
        "--random-seed", action="store_true", help="Derive the seed from the current time."
    )
    parser.add_argument("--png", type=Path, default=None, help="Write a PNG preview of the field.")
    parser.add_argument("--obj", type=Path, default=None, help="Write the generated meshes as OBJ.")
    parser.add_argument("--ascii", action="store_true", help="Print the field as text.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser


def named_meshes(mesh) -> List[Tuple[str, MeshData]]:
    if isinstance(mesh, CaveMesh3D):
        return [(f"chunk_{i}", chunk.mesh) for i, chunk in enumerate(mesh.chunks)]
    return [("cave", mesh.cave), ("walls", mesh.walls)]


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.debug else logging.INFO)

    profile = PROFILES[args.profile]
    start_time = time.perf_counter()
    try:
        config = load_config(args.config, profile)
        config = config.with_overrides(
            seed=args.seed, use_random_seed=True if args.random_seed else None
        )
        session = CaveSession(config)
        result = session.regenerate()
    except FileNotFoundError as e:
        log.critical("Required file not found", error=str(e))
        sys.exit(f"Cave generation failed: File not found - {e}")
    except yaml.YAMLError as e:
        log.critical("Configuration file is not valid YAML", error=str(e))
        sys.exit(f"Cave generation failed: Invalid YAML - {e}")
    except ConfigError as e:
        log.critical("Invalid cave configuration", error=str(e))
        sys.exit(f"Cave generation failed: {e}")

    cave = result.cave
    log.info(
        "Cave ready",
        profile=profile,
        seed=cave.seed,
        shape=cave.field.shape,
        rooms=len(cave.rooms),
        spawn=cave.spawn,
        spawn_position=cave.spawn_position,
        elapsed=round(time.perf_counter() - start_time, 3),
    )

    if args.ascii:
        print(render_ascii(cave.field, cave.spawn))
    if args.png is not None:
        save_field_preview(cave.field, args.png, cave.spawn)
    if args.obj is not None:
        write_obj(named_meshes(result.mesh), args.obj)


if __name__ == "__main__":
    main()
