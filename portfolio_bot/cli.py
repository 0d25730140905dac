import argparse
import logging
import shutil

from portfolio_bot.config import DOCUMENTS_DIR, HOST, PORT, TOP_K, VECTOR_DIR
from portfolio_bot.main import run
from portfolio_bot.memory.embedder import Embedder
from portfolio_bot.memory.store import build_vector_store, get_vector_store, index_exists

logger = logging.getLogger(__name__)


def cmd_build(args):
    if index_exists(args.vector_dir):
        if not args.rebuild:
            print(f"Index already exists in {args.vector_dir} (use --rebuild to replace it)")
            return
        shutil.rmtree(args.vector_dir)
        logger.info("Existing vector store removed", extra={"vector_dir": args.vector_dir})

    store = build_vector_store(Embedder(), args.vector_dir, args.documents_dir)
    print(f"Indexed {len(store)} chunks into {args.vector_dir}")


def cmd_query(args):
    store = get_vector_store(Embedder(), args.vector_dir, args.documents_dir)

    for i, (doc, score) in enumerate(store.similarity_search(args.query, k=args.k), 1):
        source = doc.metadata.get("source", "-")
        print(f"[{i}] {source} score={score:.4f}")
        print(doc.page_content)
        print("-" * 80)


def cmd_serve(args):
    run(host=args.host, port=args.port)


def main(argv=None):
    p = argparse.ArgumentParser(description="Portfolio chatbot: index tools and HTTP server")
    sub = p.add_subparsers(dest="cmd", required=True)

    pb = sub.add_parser("build", help="Build and save the vector index")
    pb.add_argument("--vector-dir", default=VECTOR_DIR)
    pb.add_argument("--documents-dir", default=DOCUMENTS_DIR)
    pb.add_argument("--rebuild", action="store_true", help="Replace an existing index")
    pb.set_defaults(func=cmd_build)

    pq = sub.add_parser("query", help="Show the chunks retrieved for a question")
    pq.add_argument("query", help="Search query")
    pq.add_argument("-k", type=int, default=TOP_K)
    pq.add_argument("--vector-dir", default=VECTOR_DIR)
    pq.add_argument("--documents-dir", default=DOCUMENTS_DIR)
    pq.set_defaults(func=cmd_query)

    ps = sub.add_parser("serve", help="Run the HTTP API")
    ps.add_argument("--host", default=HOST)
    ps.add_argument("--port", type=int, default=PORT)
    ps.set_defaults(func=cmd_serve)

    args = p.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
