import uuid

from dotenv import load_dotenv

from httpfanout import DispatchObserver, RequestDescriptor, default_concurrency, dispatch_sync
from httpfanout.utils import setup_logging


class PrintObserver(DispatchObserver):
    def on_result(self, record):
        status = record.status_code if record.success else record.error
        print(f"  [{record.correlation_id}] {record.method} {record.url} -> {status} ({record.duration_ms:.0f} ms)")

    def on_progress(self, completed, total):
        print(f"Progress: {completed}/{total}")

    def on_finished(self, completed, total):
        print(f"All requests completed. Total: {completed}/{total}")


def main() -> None:
    load_dotenv()
    setup_logging("WARNING")

    requests = [
        RequestDescriptor(
            url="https://httpbin.org/anything",
            method="GET",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            query={"message": "Hello JSON"},
            correlation_id=str(uuid.uuid4()),
        ),
        RequestDescriptor(
            url="https://httpbin.org/status/301",
            headers={"Content-Type": "application/json"},
            body={"message": "redirects are returned, not followed"},
            correlation_id=str(uuid.uuid4()),
        ),
        RequestDescriptor(
            url="https://httpbin.org/post",
            method="POST",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            body={"key1": "value1", "key2": "value2"},
            correlation_id=str(uuid.uuid4()),
        ),
    ]

    print(f"▶ Dispatching {len(requests)} requests...")
    summary = dispatch_sync(requests, concurrency=default_concurrency(), observer=PrintObserver())
    print(f"Success: {summary.success_count}, failed: {summary.failure_count}, {summary.elapsed_ms:.0f} ms")


if __name__ == "__main__":
    main()
