
import argparse
import asyncio
import sys
from pathlib import Path

from voiceforge.capabilities import DEFAULT_OUTPUT_FORMAT, OUTPUT_FORMATS
from voiceforge.config import get_settings
from voiceforge.controller import FormController, Phase, ProxyClient
from voiceforge.keystore import ApiKeyStore
from voiceforge.utils import mask_key

async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = ApiKeyStore(settings.key_store_path)
    controller = FormController(
        ProxyClient(args.url, timeout=settings.upstream_timeout_s),
        key_store=store,
        batch_concurrency=settings.batch_concurrency,
        default_model_id=args.model or settings.elevenlabs_model_id,
    )

    phase = await controller.start()
    if args.api_key:
        await controller.submit_api_key(args.api_key, save=args.save_key)
    elif phase == Phase.AWAITING_KEY and controller.saved_keys:
        key = controller.saved_keys[-1]
        print(f"[key] using saved key {mask_key(key)}")
        await controller.use_saved_key(key)
    if controller.phase != Phase.READY:
        print("[error] No API key configured on the server; pass --api-key", file=sys.stderr)
        return 2

    if args.voice:
        await controller.select_voice(args.voice)
    elif controller.voices:
        await controller.select_voice(controller.voices[0].voice_id)
    controller.select_model(controller.form.model_id)

    form = controller.form
    form.text = args.text
    form.variables = args.variables or ""
    form.output_format = args.format
    if args.stability is not None:
        form.stability = args.stability
    if args.similarity is not None:
        form.similarity_boost = args.similarity
    print(f"[form] model={form.model_id} voice={form.voice_id} stability={form.stability} similarity={form.similarity_boost}")

    if not await controller.submit():
        print(f"[error] {controller.error}", file=sys.stderr)
        return 1
    for result in controller.results:
        print(f"[audio] {result.label}: {len(result.audio)} base64 chars")

    out = controller.save_bundle(Path(args.out))
    if out is None:
        print(f"[error] {controller.error}", file=sys.stderr)
        return 1
    print(f"Wrote {len(controller.results)} audio file(s) -> {out}")
    return 0

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--url", default="http://localhost:8000")
    ap.add_argument("--text", required=True, help="Text or template with a {} placeholder")
    ap.add_argument("--variables", default=None, help="Comma separated values substituted into --text")
    ap.add_argument("--voice", default=None)
    ap.add_argument("--model", default=None)
    ap.add_argument("--format", default=DEFAULT_OUTPUT_FORMAT, choices=OUTPUT_FORMATS)
    ap.add_argument("--stability", type=float, default=None)
    ap.add_argument("--similarity", type=float, default=None)
    ap.add_argument("--api-key", dest="api_key", default=None)
    ap.add_argument("--save-key", dest="save_key", action="store_true")
    ap.add_argument("--out", default="generated_audios.zip")
    args = ap.parse_args()
    sys.exit(asyncio.run(run(args)))

if __name__ == "__main__":
    main()
