import argparse
import json
from dataclasses import asdict
from pathlib import Path

from app.config.settings import Settings
from app.database.connection import close_pool, init_pool
from app.database.repositories.documents_repository import DocumentsRepository
from app.database.repositories.stats_repository import StatsRepository
from app.database.schema import ensure_schema
from app.documents.ingestor import DocumentIngestor
from app.documents.reprocessor import Reprocessor
from app.events.models import ProgressEvent
from app.events.progress import ProgressChannel
from app.events.search import LiveSearchNotifier
from app.events.stats import StatsBroadcaster
from app.logging.logger import Log
from app.processor.file_store import FileStore
from app.processor.processor import build_processor
from app.search.service import SearchService
from app.worker.dispatcher import Dispatcher
from app.worker.worker import Worker


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="docscan", description="Scanned document OCR worker")
    commands = parser.add_subparsers(dest="command")

    commands.add_parser("worker", help="poll for queued documents and process them")

    ingest = commands.add_parser("ingest", help="store a file and queue it for OCR")
    ingest.add_argument("path", type=Path)
    ingest.add_argument("--title")
    ingest.add_argument("--language")
    ingest.add_argument("--wait", action="store_true", help="process now and print progress")

    reprocess = commands.add_parser("reprocess", help="run OCR again for a document")
    reprocess.add_argument("document_id", type=int)
    reprocess.add_argument("--language")

    search = commands.add_parser("search", help="search recognized text")
    search.add_argument("query")
    search.add_argument("--page", type=int, default=1)
    search.add_argument("--limit", type=int, default=10)

    return parser.parse_args(argv)


def _print_event(event: ProgressEvent) -> None:
    print(json.dumps(event.to_dict()), flush=True)


def main(argv: list[str] | None = None) -> None:
    """Entry point: initialize pool -> build dependencies -> run command."""
    args = _parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    init_pool(settings)

    dispatcher: Dispatcher | None = None
    try:
        ensure_schema()
        doc_repo = DocumentsRepository()
        stats_repo = StatsRepository()
        file_store = FileStore(Path(settings.upload_dir))
        progress = ProgressChannel()
        search_notifier = LiveSearchNotifier()
        stats = StatsBroadcaster(doc_repo, stats_repo)
        processor = build_processor(
            settings,
            progress=progress,
            search_notifier=search_notifier,
            stats=stats,
            doc_repo=doc_repo,
            file_store=file_store,
        )
        dispatcher = Dispatcher(processor, settings)

        if args.command == "ingest":
            ingestor = DocumentIngestor(doc_repo, file_store, settings.default_language)
            document = ingestor.ingest(args.path, title=args.title, language=args.language)
            print(json.dumps({"id": document.id, "status": document.status.value}), flush=True)
            if args.wait and document.id is not None:
                claimed = doc_repo.claim(document.id)
                if claimed is None:
                    Log.info(f"Document {document.id} is not queued here, not waiting")
                else:
                    progress.subscribe(document.id, _print_event)
                    dispatcher.submit(document.id, file_store.source_path(claimed)).result()
        elif args.command == "reprocess":
            progress.subscribe(args.document_id, _print_event)
            reprocessor = Reprocessor(doc_repo, file_store, dispatcher)
            future = reprocessor.reprocess(args.document_id, language=args.language)
            if future is not None:
                future.result()
        elif args.command == "search":
            service = SearchService(doc_repo, stats_repo, stats)
            results = service.search(args.query, page=args.page, limit=args.limit)
            print(json.dumps(asdict(results), indent=2), flush=True)
        else:
            Worker(doc_repo, file_store, dispatcher, settings).run()
    finally:
        if dispatcher is not None:
            dispatcher.shutdown(wait=True)
        close_pool()


if __name__ == "__main__":
    main()
