"""Async functional registry operations."""

from .core.auth import AuthHandler
from .core.registry_client import RegistryClient
from .core.types import DEFAULT_TIMEOUT
from .models import ContentDescriptor, ImageManifest
from .reference import ImageReference


async def check_registry_connectivity(
    registry: str, insecure: bool = False, timeout: float = DEFAULT_TIMEOUT
) -> bool:
    """레지스트리가 v2 API를 지원하는지 확인합니다.

    Args:
        registry: 레지스트리 호스트 (예: "localhost:5000", "ghcr.io")
        insecure: HTTPS 대신 HTTP 사용 여부
        timeout: 요청 타임아웃 (초, 기본값: 30초)

    Returns:
        bool: 레지스트리 접근 가능 시 True

    Raises:
        RegistryError: 연결 확인 실패 시

    Examples:
        accessible = await check_registry_connectivity("localhost:5000", insecure=True)
    """
    async with RegistryClient(registry, insecure=insecure, timeout=timeout) as client:
        await client.check_api_version()
    return True


async def list_tags(
    image: str,
    insecure: bool = False,
    auth: AuthHandler | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> list[str]:
    """저장소의 모든 태그 목록을 조회합니다.

    Args:
        image: 이미지 이름 (예: "localhost:5000/myapp"); 태그 부분은 무시됩니다
        insecure: HTTPS 대신 HTTP 사용 여부
        auth: 인증 정보 (선택사항)
        timeout: 요청 타임아웃 (초, 기본값: 30초)

    Returns:
        list[str]: 태그 이름 목록 (예: ["latest", "v1.0.0"])

    Raises:
        RegistryError: 저장소가 없거나 태그가 하나도 없는 경우

    Examples:
        tags = await list_tags("localhost:5000/myapp", insecure=True)
    """
    reference = ImageReference.parse(image)
    async with RegistryClient(
        reference.registry, insecure=insecure, auth=auth, timeout=timeout
    ) as client:
        result = await client.get_tags(reference.repository)
    return result.tags


async def get_image_manifest(
    image: str,
    architecture: str,
    insecure: bool = False,
    auth: AuthHandler | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> tuple[ImageManifest, ContentDescriptor]:
    """이미지의 특정 아키텍처용 매니페스트를 조회합니다.

    멀티 아키텍처 이미지인 경우 인덱스에서 해당 아키텍처의 매니페스트를 선택합니다.

    Args:
        image: 이미지 이름 (예: "localhost:5000/myapp:latest")
        architecture: 아키텍처 (예: "amd64", "arm64")
        insecure: HTTPS 대신 HTTP 사용 여부
        auth: 인증 정보 (선택사항)
        timeout: 요청 타임아웃 (초, 기본값: 30초)

    Returns:
        tuple[ImageManifest, ContentDescriptor]: 매니페스트와 그 디스크립터

    Raises:
        NoMatchingPlatformError: 인덱스에 해당 아키텍처가 없는 경우
        RegistryError: 요청 실패 시

    Examples:
        manifest, descriptor = await get_image_manifest(
            "localhost:5000/myapp:latest", "arm64", insecure=True
        )
        print(f"레이어 수: {len(manifest.layers)}")
    """
    reference = ImageReference.parse(image)
    async with RegistryClient(
        reference.registry, insecure=insecure, auth=auth, timeout=timeout
    ) as client:
        return await client.get_image_manifest(reference, architecture)


async def blob_exists(
    image: str,
    digest: str,
    insecure: bool = False,
    auth: AuthHandler | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> bool:
    """저장소에 blob이 존재하는지 확인합니다.

    Args:
        image: 이미지 이름 (예: "localhost:5000/myapp"); 태그 부분은 무시됩니다
        digest: blob digest (예: "sha256:abc123...")
        insecure: HTTPS 대신 HTTP 사용 여부
        auth: 인증 정보 (선택사항)
        timeout: 요청 타임아웃 (초, 기본값: 30초)

    Returns:
        bool: 존재하면 True, 없으면 False

    Raises:
        RegistryError: 404 이외의 오류 응답 시
    """
    reference = ImageReference.parse(image)
    async with RegistryClient(
        reference.registry, insecure=insecure, auth=auth, timeout=timeout
    ) as client:
        return await client.blob_exists(reference.repository, digest)

