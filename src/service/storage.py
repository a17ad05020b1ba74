"""프로세스 메모리 기반 저장소 (Blob / Job).

재시작하면 사라진다. 키 단위로 레코드를 통째로 교체하며,
스레드풀에서 호출되어도 안전하도록 Lock으로 감싼다.
"""

import threading
import uuid
from collections.abc import Callable
from typing import Any

from model.blob import Blob
from model.job import Job


def new_id() -> str:
    return uuid.uuid4().hex


class BlobStore:
    def __init__(self):
        self._items: dict[str, Blob] = {}
        self._lock = threading.Lock()

    def put(self, data: bytes, mime_type: str, filename: str | None = None) -> Blob:
        blob = Blob(
            id=new_id(),
            data=data,
            mime_type=mime_type,
            filename=filename,
            size_bytes=len(data),
        )
        with self._lock:
            self._items[blob.id] = blob
        return blob

    def get(self, blob_id: str) -> Blob | None:
        with self._lock:
            return self._items.get(blob_id)

    def delete(self, blob_id: str) -> bool:
        with self._lock:
            return self._items.pop(blob_id, None) is not None

    def __len__(self) -> int:
        return len(self._items)


class JobStore:
    def __init__(self):
        self._items: dict[str, Job] = {}
        self._lock = threading.Lock()

    def create(
        self,
        blob_id: str,
        original_url: str,
        transformation_type: str,
        amount: Any,
    ) -> Job:
        job = Job(
            id=new_id(),
            blob_id=blob_id,
            original_url=original_url,
            transformation_type=transformation_type,
            amount=amount,
        )
        with self._lock:
            self._items[job.id] = job
        return job

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            return self._items.get(job_id)

    def update(self, job_id: str, mutate: Callable[[Job], Job]) -> Job | None:
        """mutate(현재 레코드) 결과로 레코드를 교체한다.

        이미 삭제된 작업이면 아무것도 하지 않고 None을 반환한다.
        """
        with self._lock:
            current = self._items.get(job_id)
            if current is None:
                return None
            updated = mutate(current)
            self._items[job_id] = updated
            return updated

    def delete(self, job_id: str) -> Job | None:
        with self._lock:
            return self._items.pop(job_id, None)

    def __len__(self) -> int:
        return len(self._items)
