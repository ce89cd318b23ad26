"""
서비스 예외 모음

분류
- 외부 서비스 실패(전사/싱크/저장): 세션이 잡아서 error 상태로 노출, 타임라인은 그대로
- not found 계열: KeyError도 같이 상속 -> dict 조회처럼 다룰 수 있음
- 입력 이상(깨진 시간 구간, 빈 텍스트)은 예외 없이 SRT 단계에서 조용히 건너뜀
"""


class CaptionServiceError(RuntimeError):
    """모든 서비스 예외의 베이스"""


class ApiKeyMissingError(CaptionServiceError):
    def __init__(self, message: str = "KEY_MISSING"):
        super().__init__(message)


class ApiKeyInvalidError(CaptionServiceError):
    def __init__(self, message: str = "KEY_INVALID"):
        super().__init__(message)


class TranscriptionError(CaptionServiceError):
    pass


class RefinementError(CaptionServiceError):
    pass


class MediaError(CaptionServiceError):
    """ffmpeg / ffprobe 실행 실패"""


class PersistenceError(CaptionServiceError):
    pass


class ProjectNotFoundError(CaptionServiceError, KeyError):
    def __init__(self, project_id: str):
        super().__init__(f"project not found: {project_id}")
        self.project_id = project_id

    def __str__(self) -> str:
        # KeyError는 str()에 따옴표를 붙여서 직접 지정
        return f"project not found: {self.project_id}"


class SessionNotFoundError(CaptionServiceError, KeyError):
    def __init__(self, session_id: str):
        super().__init__(f"session not found: {session_id}")
        self.session_id = session_id

    def __str__(self) -> str:
        return f"session not found: {self.session_id}"
