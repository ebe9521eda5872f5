# Resolve an address table, or look up / search single streets, against the configured datasets
from argparse import ArgumentParser
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from address_resolver.pipeline import BatchPipeline
from address_resolver.settings import settings
from address_resolver.utils.errors import DatasetUnavailableError

# expose .env to requests (proxies) as well as to the settings
load_dotenv()


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(description='Resolve municipal addresses to coordinates')
    parser.add_argument('--log-level', '-l', default='INFO')
    parser.add_argument('--log-file', type=Path, default=None)
    parser.add_argument('--workers', '-w', type=int, default=settings.workers)
    parser.add_argument('--address-points', type=Path, default=settings.address_points_path)
    parser.add_argument('--street-names', type=Path, default=settings.street_names_path)
    sub = parser.add_subparsers(dest='command', required=True)

    resolve = sub.add_parser('resolve', help='Resolve every row of a CSV/XLSX table')
    resolve.add_argument('input', type=Path)
    resolve.add_argument('--output', '-o', type=Path, default=None)

    lookup = sub.add_parser('lookup', help='Resolve a single street and house number')
    lookup.add_argument('street')
    lookup.add_argument('number', type=int)

    search = sub.add_parser('search', help='Street names starting with a prefix')
    search.add_argument('query')
    search.add_argument('--max-results', '-n', type=int, default=20)
    return parser


if __name__ == '__main__':
    args = build_parser().parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        filename=args.log_file,
    )
    logger = logging.getLogger('resolve_addresses')

    run_settings = settings.model_copy(update={
        'workers': args.workers,
        'address_points_path': args.address_points,
        'street_names_path': args.street_names,
    })

    try:
        pipeline = BatchPipeline.from_settings(run_settings, progress=args.command == 'resolve')
    except DatasetUnavailableError as e:
        logger.error(str(e))
        raise SystemExit(1)

    try:
        if args.command == 'resolve':
            output = pipeline.run_file(args.input, args.output)
            print(f'Wrote {output}')
        elif args.command == 'lookup':
            result = pipeline.lookup_address(args.street, args.number)
            print(json.dumps(result.to_dict() if result else None, ensure_ascii=False))
        elif args.command == 'search':
            for name in pipeline.search_streets(args.query, max_results=args.max_results):
                print(name)
    except KeyboardInterrupt:
        pipeline.cancel()
        raise SystemExit(130)
    finally:
        pipeline.resources.close()
