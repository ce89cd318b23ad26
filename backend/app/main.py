"""
FastAPI 엔트리포인트

- /api/...      : 프로젝트/세션/자막 편집/내보내기
- /outputs/...  : 업로드 원본, 내보낸 mp4/srt 정적 서빙
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from backend.app.core.config import settings
from backend.app.api.routes import router as api_router
from backend.app.core.logger import get_logger
from backend.app.services.gemini import GeminiCaptionClient
from backend.app.services.session import SessionManager
from backend.app.services.storage import JsonProjectStore

logger = get_logger(__name__)


def create_app(
    sessions: Optional[SessionManager] = None,
    output_dir: Optional[str] = None,
) -> FastAPI:
    """
    sessions를 넘기면 그걸 쓰고(테스트), 없으면 설정대로 저장소/클라이언트를 만든다.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # 종료 전에 대기 중인 자동 저장 처리
        app.state.sessions.close_all()

    app = FastAPI(title="AI Caption Studio", version="0.1.0", lifespan=lifespan)

    # CORS: Streamlit(8501)에서 FastAPI(8000) 호출할 거라 열어둠
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.sessions = sessions or SessionManager(
        store=JsonProjectStore(settings.PROJECT_DIR),
        client=GeminiCaptionClient(),
    )
    app.state.output_dir = output_dir or settings.OUTPUT_DIR

    app.include_router(api_router)

    # 폴더가 없으면 FastAPI가 시작부터 죽기 때문에 미리 생성해둔다.
    Path(app.state.output_dir).mkdir(parents=True, exist_ok=True)
    app.mount("/outputs", StaticFiles(directory=app.state.output_dir), name="outputs")
    logger.info("출력 폴더: %s", Path(app.state.output_dir).resolve())

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
