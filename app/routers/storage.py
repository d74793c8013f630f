"""
Serves objects from local storage for signed URLs issued by LocalObjectStorage.
No Bearer auth here: the ?token= JWT is the capability, scoped to one bucket/key and short-lived.
Supports Range requests for seeking. Content-Disposition: inline (play, not download).
"""
import mimetypes
import re
from pathlib import Path
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response, StreamingResponse
from app.services.storage import CHUNK_SIZE, LocalObjectStorage, ObjectStorage, verify_object_token
from app.routers.videos import get_object_storage

router = APIRouter(prefix="/api/storage", tags=["storage"])


def _stream_file_range(path: Path, request: Request, content_type: str):
    """Handle Range request for media streaming. Returns Response with 206 or 200."""
    file_size = path.stat().st_size
    range_header = request.headers.get("range")
    if not range_header:
        def full_stream():
            with open(path, "rb") as f:
                while chunk := f.read(CHUNK_SIZE):
                    yield chunk

        return StreamingResponse(
            full_stream(),
            status_code=200,
            media_type=content_type,
            headers={
                "Accept-Ranges": "bytes",
                "Content-Length": str(file_size),
                "Content-Disposition": "inline",
            },
        )

    # Parse Range: bytes=start-end
    m = re.match(r"bytes=(\d*)-(\d*)", range_header.strip())
    if not m:
        return Response(status_code=416, headers={"Content-Range": f"bytes */{file_size}"})
    start_s, end_s = m.groups()
    if not start_s:
        # bytes=-N is the last N bytes
        if not end_s or int(end_s) == 0:
            return Response(status_code=416, headers={"Content-Range": f"bytes */{file_size}"})
        start = max(0, file_size - int(end_s))
        end = file_size - 1
    else:
        start = int(start_s)
        end = int(end_s) if end_s else file_size - 1
    if start > end or start < 0 or start >= file_size:
        return Response(status_code=416, headers={"Content-Range": f"bytes */{file_size}"})
    end = min(end, file_size - 1)
    length = end - start + 1

    def range_stream():
        with open(path, "rb") as f:
            f.seek(start)
            remaining = length
            while remaining > 0:
                data = f.read(min(CHUNK_SIZE, remaining))
                if not data:
                    break
                remaining -= len(data)
                yield data

    return StreamingResponse(
        range_stream(),
        status_code=206,
        media_type=content_type,
        headers={
            "Accept-Ranges": "bytes",
            "Content-Range": f"bytes {start}-{end}/{file_size}",
            "Content-Length": str(length),
            "Content-Disposition": "inline",
        },
    )


@router.get("/{bucket}/{key:path}")
def get_object(
    bucket: str,
    key: str,
    request: Request,
    token: str = Query(...),
    storage: ObjectStorage = Depends(get_object_storage),
):
    """Stream a stored object if the signed token matches this bucket/key and has not expired."""
    if not isinstance(storage, LocalObjectStorage):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    if not verify_object_token(token, bucket, key):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired link.")
    path = storage.path_for(bucket, key)
    if path is None or not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found.")
    content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return _stream_file_range(path, request, content_type)
