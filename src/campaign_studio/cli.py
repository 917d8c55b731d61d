"""Command-line interface for the campaign studio."""

from __future__ import annotations

import argparse
import base64
import logging
import mimetypes
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

import uvicorn

from .animatic import AnimaticPlayer, WavPlaybackClock
from .app import create_app
from .config import StudioSettings
from .errors import CampaignStudioError
from .exports import write_outputs
from .orchestrator import GenerationOrchestrator
from .providers import build_providers
from .schemas import CampaignBrief, FileData
from .store import CampaignStore, RunState
from .styles import load_catalog

LOG = logging.getLogger("campaign_studio.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="campaign-studio", description="Campaign content generation studio")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Plan and render a campaign, then write script, images and narration")
    gen.add_argument("topic", help="Campaign brief / product description")
    gen.add_argument("--style", default="aesthetic", help="Content style id (default: aesthetic)")
    gen.add_argument("--language", default="Indonesian")
    gen.add_argument("--tone", default="Direct & Clear")
    gen.add_argument(
        "--audio-type",
        choices=("dubbing", "lipsync", "none"),
        help="Audio mode for the run (default: derived from the style)",
    )
    gen.add_argument("--product-image", type=Path, help="Main product image")
    gen.add_argument("--model-image", type=Path, help="Model reference image")
    gen.add_argument("--background-image", type=Path, help="Background reference image")
    gen.add_argument("--outfit-image", type=Path, action="append", default=[], help="Outfit variant (repeatable)")
    gen.add_argument("--location-image", type=Path, action="append", default=[], help="Room/location (repeatable)")
    gen.add_argument("--model-prompt", default="")
    gen.add_argument("--background-prompt", default="")
    gen.add_argument("--voice", help="Narration voice (default: settings default voice)")
    gen.add_argument("--no-narration", action="store_true", help="Skip narration synthesis")
    gen.add_argument("--high-quality", action="store_true", default=None, help="Use the high-fidelity image model")
    gen.add_argument("--bridge-token", help="Render through the token bridge instead of the primary provider")
    gen.add_argument("--fixture", action="store_true", help="Use deterministic offline providers")
    gen.add_argument("--preview", action="store_true", help="Print the animatic timeline after rendering")
    gen.add_argument("--out", type=Path, default=Path("campaign_output"), help="Output directory")

    serve_cmd = sub.add_parser("serve", help="Launch the studio HTTP API via uvicorn")
    serve_cmd.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    serve_cmd.add_argument("--port", type=int, default=7080, help="Port to bind (default: 7080)")
    serve_cmd.add_argument("--fixture", action="store_true", help="Use deterministic offline providers")
    serve_cmd.add_argument(
        "--reload",
        action="store_true",
        help="Enable uvicorn autoreload (development only)",
    )
    return parser


def _file_data(path: Optional[Path]) -> Optional[FileData]:
    if path is None:
        return None
    mime, _ = mimetypes.guess_type(path.name)
    return FileData(data=base64.b64encode(path.read_bytes()).decode("ascii"), mime_type=mime or "image/png")


def _settings(args: argparse.Namespace) -> StudioSettings:
    settings = StudioSettings.from_env(dict(os.environ))
    return settings.with_overrides(
        fixture_mode=True if args.fixture else None,
        high_quality=getattr(args, "high_quality", None),
        bridge_token=getattr(args, "bridge_token", None),
    )


def run_generate(args: argparse.Namespace) -> int:
    settings = _settings(args)
    brief = CampaignBrief(
        topic=args.topic,
        style_id=args.style,
        language=args.language,
        tone=args.tone,
        audio_type=args.audio_type,
        product_image=_file_data(args.product_image),
        model_image=_file_data(args.model_image),
        background_image=_file_data(args.background_image),
        outfit_images=[_file_data(path) for path in args.outfit_image],
        location_images=[_file_data(path) for path in args.location_image],
        model_prompt=args.model_prompt,
        background_prompt=args.background_prompt,
    )
    store = CampaignStore()
    orchestrator = GenerationOrchestrator(store, build_providers(settings), settings, catalog=load_catalog())
    try:
        result = orchestrator.generate_campaign(brief)
    except CampaignStudioError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    for shot in result.shots:
        label = "ok" if shot.image_url else f"failed: {shot.error}"
        print(f"Shot {shot.shot_number}: {label}")
    if result.state is not RunState.DONE:
        print(f"Run ended in state {result.state.value}: {result.error}", file=sys.stderr)
        return 3

    narration_wav = None
    if not args.no_narration:
        try:
            narration_wav = orchestrator.generate_narration(args.voice).wav_bytes
        except CampaignStudioError as exc:
            print(f"Narration skipped: {exc}", file=sys.stderr)

    snapshot = store.snapshot()
    written = write_outputs(
        args.out,
        script=snapshot.script,
        metadata=snapshot.metadata,
        shots=snapshot.shots,
        narration_wav=narration_wav,
    )
    for path in written:
        print(f"Wrote {path}")
    LOG.info("Campaign %s written to %s", snapshot.metadata.title if snapshot.metadata else "campaign", args.out)

    if args.preview:
        _print_timeline(snapshot.shots, store.narration)
    return 0


def _print_timeline(shots, narration) -> None:
    audio = WavPlaybackClock(narration) if narration is not None else None
    player = AnimaticPlayer(shots, audio)
    try:
        duration = narration.duration_s if narration is not None else None
        for timing in player.timings:
            span = f"{timing.start:.3f}-{timing.end:.3f}"
            if duration:
                span += f" ({timing.start * duration:.2f}s-{timing.end * duration:.2f}s)"
            print(f"SCENE {timing.index + 1}: {span}")
    finally:
        player.close()


def run_serve(args: argparse.Namespace) -> int:
    settings = _settings(args)
    app = create_app(settings)
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        reload=args.reload,
    )
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))
    if args.command == "generate":
        return run_generate(args)
    if args.command == "serve":
        return run_serve(args)
    parser.error("Unknown command")
    return 2


__all__ = ["build_parser", "main", "run_generate", "run_serve"]


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
