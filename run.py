#!/usr/bin/env python3
"""
자막 API(FastAPI) + 에디터 UI(Streamlit)를 한 번에 띄우는 실행 스크립트.

- API 포트는 API_PORT(기본 8000), UI 포트는 8501~8510 중 빈 곳
- UI에는 API_BASE 환경변수로 API 주소를 넘긴다

실행:
  python run.py
"""

import os
import signal
import socket
import subprocess
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent
FRONTEND_APP = PROJECT_ROOT / "frontend" / "app.py"
HOST = "127.0.0.1"

processes: list[subprocess.Popen] = []


def pick_free_port(start: int = 8501, end: int = 8510, host: str = HOST) -> int:
    """start~end 중 사용 가능한 첫 포트를 선택"""
    for port in range(start, end + 1):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind((host, port))
                return port
            except OSError:
                continue
    # 다 찼으면 그냥 기본값 반환(실패할 수도 있음)
    return start


def shutdown(*_):
    print("\n🛑 종료 신호 받음. 프로세스 정리 중...")
    for p in processes:
        if p.poll() is None:
            p.terminate()
    for p in processes:
        try:
            p.wait(timeout=5)
        except subprocess.TimeoutExpired:
            p.kill()
    print("✅ 종료 완료")
    sys.exit(0)


def main():
    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    api_port = int(os.getenv("API_PORT", "8000"))

    # (1) 자막 API: 종료 시 자동 저장 flush 가 돌도록 --reload 없이
    api_cmd = [
        sys.executable, "-m", "uvicorn",
        "backend.app.main:app",
        "--host", HOST,
        "--port", str(api_port),
    ]
    print("🚀 Starting caption API:", " ".join(api_cmd))
    processes.append(subprocess.Popen(api_cmd, cwd=str(PROJECT_ROOT)))

    # (2) 에디터 UI
    ui_port = pick_free_port()
    ui_cmd = [
        sys.executable, "-m", "streamlit",
        "run", str(FRONTEND_APP),
        "--server.port", str(ui_port),
        "--server.address", HOST,
    ]
    env = dict(os.environ, API_BASE=f"http://{HOST}:{api_port}")
    print(f"✅ Editor UI: http://{HOST}:{ui_port}")
    processes.append(subprocess.Popen(ui_cmd, cwd=str(PROJECT_ROOT), env=env))

    # 둘 중 하나가 죽을 때까지 대기
    for p in processes:
        p.wait()


if __name__ == "__main__":
    main()
