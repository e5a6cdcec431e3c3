"""In-process registry used by the unit tests, served with aiohttp.test_utils."""

from __future__ import annotations

import base64
import hashlib
import json
import uuid
from dataclasses import dataclass, field

from aiohttp import web
from multidict import CIMultiDict

UPLOAD_STATE = "opaque=="


def _digest(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def _error(status: int, code: str, message: str) -> web.Response:
    body = {"errors": [{"code": code, "message": message, "detail": None}]}
    return web.json_response(body, status=status)


@dataclass
class RecordedRequest:
    method: str
    path: str
    query: dict[str, list[str]]
    headers: CIMultiDict[str]


@dataclass
class FakeRegistry:
    """Minimal OCI distribution registry.

    auth: None, "basic" or "bearer"
    reject_tokens: answer every /v2 request with a challenge, even authorized ones
    reported_digest: Docker-Content-Digest value to send instead of the real one
    v2_supported: answer GET /v2/ with 404 when False
    absolute_location: hand out upload locations as absolute URLs outside /v2
    head_status: status to answer every blob HEAD with
    """

    auth: str | None = None
    username: str = "user"
    password: str = "secret"
    reject_tokens: bool = False
    reported_digest: str | None = None
    omit_location: bool = False
    v2_supported: bool = True
    absolute_location: bool = False
    head_status: int | None = None
    blobs: dict[str, dict[str, bytes]] = field(default_factory=dict)
    manifests: dict[str, dict[str, tuple[str, bytes]]] = field(default_factory=dict)
    tags: dict[str, dict[str, str]] = field(default_factory=dict)
    uploads: dict[str, str] = field(default_factory=dict)
    issued_tokens: set[str] = field(default_factory=set)
    requests: list[RecordedRequest] = field(default_factory=list)
    token_requests: list[RecordedRequest] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.app = web.Application(middlewares=[self._record, self._authenticate])
        router = self.app.router
        router.add_get("/token", self.token)
        router.add_get("/v2/", self.version)
        router.add_post("/v2/{name:.+}/blobs/uploads/", self.start_upload)
        router.add_put("/v2/{name:.+}/blobs/uploads/{session}", self.finish_upload)
        router.add_put("/uploads/{session}", self.finish_upload)
        router.add_route("HEAD", "/v2/{name:.+}/blobs/{digest}", self.head_blob)
        router.add_get("/v2/{name:.+}/blobs/{digest}", self.get_blob, allow_head=False)
        router.add_get(
            "/v2/{name:.+}/manifests/{reference}", self.get_manifest, allow_head=False
        )
        router.add_put("/v2/{name:.+}/manifests/{reference}", self.put_manifest)
        router.add_get("/v2/{name:.+}/tags/list", self.list_tags)

    @property
    def basic_credentials(self) -> str:
        encoded = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
        return f"Basic {encoded}"

    def v2_requests(self, method: str | None = None) -> list[RecordedRequest]:
        return [
            request
            for request in self.requests
            if request.path.startswith("/v2") and method in (None, request.method)
        ]

    # Middleware

    @web.middleware
    async def _record(self, request: web.Request, handler):
        recorded = RecordedRequest(
            method=request.method,
            path=request.path,
            query={key: request.query.getall(key) for key in request.query.keys()},
            headers=request.headers.copy(),
        )
        if request.path == "/token":
            self.token_requests.append(recorded)
        else:
            self.requests.append(recorded)
        return await handler(request)

    @web.middleware
    async def _authenticate(self, request: web.Request, handler):
        if self.auth is None or not request.path.startswith("/v2"):
            return await handler(request)

        header = request.headers.get("Authorization", "")
        if self.auth == "basic" and header == self.basic_credentials:
            return await handler(request)
        if (
            self.auth == "bearer"
            and not self.reject_tokens
            and header.startswith("Bearer ")
            and header[len("Bearer ") :] in self.issued_tokens
        ):
            return await handler(request)

        if self.auth == "basic":
            challenge = 'Basic realm="fake-registry"'
        else:
            realm = request.url.with_path("/token").with_query(None)
            name = request.match_info.get("name", "")
            challenge = (
                f'Bearer realm="{realm}",service="fake-registry",'
                f'scope="repository:{name}:pull,push"'
            )
        return web.Response(
            status=401,
            headers={"WWW-Authenticate": challenge},
            text=json.dumps(
                {"errors": [{"code": "UNAUTHORIZED", "message": "authentication required"}]}
            ),
            content_type="application/json",
        )

    # Handlers

    async def token(self, request: web.Request) -> web.Response:
        header = request.headers.get("Authorization")
        if header is not None and header != self.basic_credentials:
            return web.Response(status=401, text="bad credentials")
        token = f"token-{uuid.uuid4().hex}"
        self.issued_tokens.add(token)
        return web.json_response({"token": token, "expires_in": 300})

    async def version(self, request: web.Request) -> web.Response:
        if not self.v2_supported:
            return web.Response(status=404)
        return web.json_response({})

    async def start_upload(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        session = uuid.uuid4().hex
        self.uploads[session] = name
        headers = {"Docker-Upload-UUID": session}
        if self.absolute_location:
            location = request.url.with_path(f"/uploads/{session}")
            headers["Location"] = str(location.with_query({"_state": UPLOAD_STATE}))
        elif not self.omit_location:
            # Relative location that already carries its own query item
            headers["Location"] = f"/v2/{name}/blobs/uploads/{session}?_state={UPLOAD_STATE}"
        return web.Response(status=202, headers=headers)

    async def finish_upload(self, request: web.Request) -> web.Response:
        session = request.match_info["session"]
        name = request.match_info.get("name", self.uploads.get(session))
        if name is None or self.uploads.get(session) != name:
            return _error(404, "BLOB_UPLOAD_UNKNOWN", "upload session unknown")
        if request.query.get("_state") != UPLOAD_STATE:
            return _error(400, "BLOB_UPLOAD_INVALID", "upload state lost")
        digest = request.query.get("digest")
        if digest is None:
            return _error(400, "DIGEST_INVALID", "digest missing")
        data = await request.read()
        if _digest(data) != digest:
            return _error(400, "DIGEST_INVALID", "provided digest did not match")

        del self.uploads[session]
        self.blobs.setdefault(name, {})[digest] = data
        return web.Response(
            status=201,
            headers={
                "Location": f"/v2/{name}/blobs/{digest}",
                "Docker-Content-Digest": self.reported_digest or digest,
            },
        )

    async def head_blob(self, request: web.Request) -> web.Response:
        if self.head_status is not None:
            return web.Response(status=self.head_status)
        name, digest = request.match_info["name"], request.match_info["digest"]
        if digest not in self.blobs.get(name, {}):
            return web.Response(status=404)
        return web.Response(status=200, headers={"Docker-Content-Digest": digest})

    async def get_blob(self, request: web.Request) -> web.Response:
        name, digest = request.match_info["name"], request.match_info["digest"]
        data = self.blobs.get(name, {}).get(digest)
        if data is None:
            return _error(404, "BLOB_UNKNOWN", "blob unknown to registry")
        return web.Response(body=data, content_type="application/octet-stream")

    async def get_manifest(self, request: web.Request) -> web.Response:
        name, reference = request.match_info["name"], request.match_info["reference"]
        digest = self.tags.get(name, {}).get(reference, reference)
        stored = self.manifests.get(name, {}).get(digest)
        if stored is None:
            return _error(404, "MANIFEST_UNKNOWN", "manifest unknown")
        # Like many registries, ignore Accept and send whatever is stored
        media_type, data = stored
        return web.Response(
            body=data,
            headers={"Content-Type": media_type, "Docker-Content-Digest": digest},
        )

    async def put_manifest(self, request: web.Request) -> web.Response:
        name, reference = request.match_info["name"], request.match_info["reference"]
        data = await request.read()
        digest = _digest(data)
        if reference.startswith("sha256:") and reference != digest:
            return _error(400, "DIGEST_INVALID", "manifest digest did not match")
        try:
            document = json.loads(data)
        except json.JSONDecodeError:
            return _error(400, "MANIFEST_INVALID", "manifest invalid")
        for descriptor in document.get("layers", []) + [document.get("config") or {}]:
            if descriptor and descriptor["digest"] not in self.blobs.get(name, {}):
                return _error(400, "MANIFEST_BLOB_UNKNOWN", descriptor["digest"])

        self.manifests.setdefault(name, {})[digest] = (
            request.headers.get("Content-Type", ""),
            data,
        )
        if not reference.startswith("sha256:"):
            self.tags.setdefault(name, {})[reference] = digest
        return web.Response(
            status=201,
            headers={
                "Location": f"/v2/{name}/manifests/{digest}",
                "Docker-Content-Digest": self.reported_digest or digest,
            },
        )

    async def list_tags(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        tags = self.tags.get(name)
        if not tags:
            return _error(404, "NAME_UNKNOWN", "repository name not known to registry")
        return web.json_response({"name": name, "tags": sorted(tags)})
