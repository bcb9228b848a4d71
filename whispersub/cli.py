"""Command-Line Interface handler for WhisperSub."""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from tqdm import tqdm

from .cancellation import CancellationToken
from .config_loader import ConfigLoader
from .exceptions import (
    ConfigurationError, InputRequiredError, ModelSelectionRequired, ModelUnavailableError,
    OperationCancelledError, WhisperSubError,
)
from .languages import resolve_language
from .log_setup import setup_logging
from .model_catalog import ModelCatalog, ModelDownloader
from .model_locator import ModelLocator
from .models import FileResult, FileState, Language, ModelDescriptor
from .segment_stream import SegmentStreamConsumer
from .subtitle_generator import SubtitleGenerator
from .transcoder import AudioTranscoder
from .utils import resolve_input_files
from .whisper_engine import WhisperEngine

logger = logging.getLogger(__name__)

# CLI flag -> config key
_OVERRIDES = {
    'output_dir': 'output_dir',
    'temp_dir': 'temp_dir',
    'device': 'device',
    'models_dir': 'models_dir',
    'timing_log': 'timing_log',
}


class CLIHandler:
    """Parses arguments and runs the WhisperSub commands."""

    def __init__(self):
        self.parser = self._create_parser()
        self.cancel_token = CancellationToken()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Creates the argument parser for the CLI."""
        parser = argparse.ArgumentParser(
            prog="whispersub",
            description="WhisperSub: Transcribe media files into SRT subtitles with Whisper.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter
        )
        parser.add_argument(
            "-c", "--config",
            default="config.yaml",
            help="Path to the configuration YAML file. Defaults are used if the default file is missing."
        )
        parser.add_argument(
            "--log-level",
            default="INFO",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            help="Set the logging level for console and file output."
        )
        parser.add_argument(
            "--models-dir",
            default=None,
            help="Override the directory that holds downloaded models."
        )
        subparsers = parser.add_subparsers(dest="command", required=True)

        transcribe = subparsers.add_parser(
            "transcribe",
            help="Transcribe media files into SRT subtitles.",
            formatter_class=argparse.ArgumentDefaultsHelpFormatter
        )
        transcribe.add_argument(
            "paths",
            nargs="*",
            help="Media files or directories to transcribe. Prompted for when omitted."
        )
        transcribe.add_argument(
            "-m", "--model",
            default=None,
            help="Model file path or catalog name (e.g. 'base'). Prompted for when unknown."
        )
        transcribe.add_argument(
            "-l", "--language",
            default=None,
            help="Language code or name, or 'auto'. Defaults to the config value."
        )
        transcribe.add_argument(
            "-o", "--output-dir",
            default=None,
            help="Directory for the .srt files. Defaults to each input's directory."
        )
        transcribe.add_argument(
            "--temp-dir",
            default=None,
            help="Override the directory for converted audio specified in the config file."
        )
        transcribe.add_argument(
            "--timing-log",
            default=None,
            help="Override the timing log path specified in the config file."
        )
        transcribe.add_argument(
            "--device",
            default=None,
            choices=["cuda", "cpu"],
            help="Override the processing device (cuda or cpu) specified in config."
        )

        subparsers.add_parser(
            "models",
            help="List the model catalog and which models are available locally."
        )
        return parser

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Parses arguments, sets up logging, loads config, and runs the command."""
        args = self.parser.parse_args(argv)

        log_level = getattr(logging, args.log_level.upper(), logging.INFO)
        setup_logging(log_level=log_level, log_dir='logs', log_file='whispersub_init.log')

        try:
            config = ConfigLoader().load_config(
                args.config, required=args.config != self.parser.get_default("config")
            )
        except (ConfigurationError, FileNotFoundError) as e:
            logger.critical(f"Failed to load configuration from {args.config}: {e}")
            sys.exit(1)

        setup_logging(
            log_level=log_level,
            log_dir=config.get('log_dir', 'logs'),
            log_file=config.get('log_file', 'whispersub.log')
        )
        logger.info("Logging re-configured with settings from config file.")

        for flag, key in _OVERRIDES.items():
            value = getattr(args, flag, None)
            if value:
                logger.info(f"Overriding {key} from config with CLI argument: {value}")
                config[key] = value

        try:
            if args.command == "models":
                exit_code = self.list_models(config)
            else:
                exit_code = self.transcribe(args, config)
        except KeyboardInterrupt:
            logger.warning("Process interrupted by user (Ctrl+C). Exiting.")
            exit_code = 1
        except WhisperSubError as e:
            logger.error(f"A WhisperSub error occurred: {e}")
            exit_code = 1
        except Exception as e:
            logger.critical(f"An unexpected critical error occurred at the top level: {e}", exc_info=True)
            exit_code = 2
        sys.exit(exit_code)

    def list_models(self, config: dict) -> int:
        catalog = ModelCatalog(config['models_dir'])
        for descriptor in catalog.list_models():
            status = "local" if descriptor.exists else "download"
            print(f"{descriptor.name:<20} {status:<9} {descriptor.path}")
        return 0

    def transcribe(self, args: argparse.Namespace, config: dict) -> int:
        """Resolves inputs, then runs the batch. Returns the process exit code."""
        language = self._resolve_language(args.language or config.get('language'))
        input_paths = self._resolve_paths(args.paths, config['media_extensions'])
        if not input_paths:
            logger.error("No input files to transcribe.")
            return 1

        locator = ModelLocator(
            ModelCatalog(config['models_dir']),
            ModelDownloader(timeout=config['download_timeout'])
        )
        device = config.get('device', 'cuda')
        consumer = SegmentStreamConsumer(lambda: WhisperEngine(
            device=device,
            fp16=config.get('whisper_fp16', True) if device == 'cuda' else False,
            window_seconds=config['window_seconds'],
        ))
        generator = SubtitleGenerator(
            config=config,
            model_locator=locator,
            transcoder=AudioTranscoder(
                temp_dir=config['temp_dir'],
                ffmpeg_path=config.get('ffmpeg_path'),
                sample_rate=config['sample_rate'],
            ),
            stream_consumer=consumer,
        )

        previous_handler = signal.signal(signal.SIGINT, self._handle_interrupt)
        download_bar = None
        try:
            with tqdm(total=len(input_paths), unit="file", desc="Transcribing") as pbar:
                def on_progress(percent: float) -> None:
                    nonlocal download_bar
                    if download_bar is None:
                        download_bar = tqdm(total=100, unit="%", desc="Downloading model", leave=False)
                    download_bar.update(percent - download_bar.n)

                def on_file_done(result: FileResult) -> None:
                    pbar.set_postfix_str(f"{result.state.value}: {result.input_path[-30:]}")
                    pbar.update(1)

                summary = generator.run(
                    input_paths,
                    args.model,
                    language,
                    self.cancel_token,
                    selector=self._prompt_model,
                    on_progress=on_progress,
                    on_file_done=on_file_done,
                )
        except ModelUnavailableError as e:
            logger.critical(f"Model unavailable, nothing was transcribed: {e}")
            return 1
        except OperationCancelledError as e:
            logger.warning(f"{e}. Nothing was transcribed.")
            return 1
        finally:
            if download_bar is not None:
                download_bar.close()
            signal.signal(signal.SIGINT, previous_handler)

        for result in summary.results:
            if result.state is FileState.FAILED:
                print(f"FAILED    {result.input_path}: {result.error}", file=sys.stderr)
            else:
                print(f"{result.state.value.upper():<9} {result.input_path} -> {result.output_path}")
        logger.info(f"Successfully processed: {summary.completed}/{len(input_paths)} files")
        return 0 if summary.succeeded else 1

    def _handle_interrupt(self, signum, frame) -> None:
        if self.cancel_token.is_cancelled:
            raise KeyboardInterrupt
        logger.warning("Cancelling after the current segment (press Ctrl+C again to abort)...")
        self.cancel_token.cancel()

    def _resolve_language(self, reference: Optional[str]) -> Language:
        while True:
            try:
                return resolve_language(reference)
            except InputRequiredError as e:
                print(e, file=sys.stderr)
                reference = self._ask("Enter a language code or name (or 'auto'): ")

    def _resolve_paths(self, paths: List[str], extensions: List[str]) -> List[str]:
        try:
            return resolve_input_files(paths, extensions)
        except InputRequiredError:
            answer = self._ask("Enter the files to transcribe (separated by ';'): ")
            entered = [part.strip().strip('"') for part in answer.split(';') if part.strip()]
            return resolve_input_files(entered, extensions) if entered else []

    def _prompt_model(self, descriptors: List[ModelDescriptor]) -> Optional[ModelDescriptor]:
        """Numbered menu over the catalog; used when --model matches nothing."""
        if not descriptors:
            raise ModelSelectionRequired("The model catalog is empty.")
        print("Select a model:")
        for number, descriptor in enumerate(descriptors, start=1):
            marker = "*" if descriptor.exists else " "
            print(f"  {number:>2}. {marker} {descriptor.name}")
        while True:
            answer = self._ask(f"Model number [1-{len(descriptors)}]: ")
            if answer.isdigit() and 1 <= int(answer) <= len(descriptors):
                return descriptors[int(answer) - 1]
            print("Please enter one of the listed numbers.", file=sys.stderr)

    def _ask(self, prompt: str) -> str:
        try:
            return input(prompt).strip()
        except EOFError:
            raise InputRequiredError("Input ended before a value was entered.")


def main() -> None:
    CLIHandler().run()
