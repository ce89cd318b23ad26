import os

import requests
import streamlit as st

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000")

st.set_page_config(page_title="🎬 AI 자막 스튜디오", layout="wide")


def api(method: str, path: str, **kwargs):
    r = requests.request(method, f"{API_BASE}{path}", timeout=kwargs.pop("timeout", 60), **kwargs)
    if r.status_code >= 400:
        try:
            detail = r.json().get("detail")
        except ValueError:
            detail = r.text
        raise RuntimeError(f"{r.status_code}: {detail}")
    return r


def load_state(sid: str) -> dict:
    return api("GET", f"/api/sessions/{sid}").json()


st.title("🎬 AI 자막 스튜디오")
st.caption("✅ 영상 업로드 → AI 자막 → 편집 → SRT/영상 내보내기")

# --- 세션 ---
with st.sidebar:
    st.subheader("프로젝트")
    try:
        projects = api("GET", "/api/projects").json()
    except (requests.RequestException, RuntimeError) as e:
        st.error(f"서버 연결 실패: {e}")
        st.stop()

    labels = {"(새 프로젝트)": None}
    labels.update({f"{p['name']} · {p['created_at'][:16]}": p["id"] for p in projects})
    picked = st.selectbox("열기", list(labels))

    if st.button("세션 시작", type="primary"):
        body = {"project_id": labels[picked]} if labels[picked] else {}
        try:
            st.session_state["sid"] = api("POST", "/api/sessions", json=body).json()["session_id"]
        except RuntimeError as e:
            st.error(f"세션 시작 실패: {e}")

sid = st.session_state.get("sid")
if not sid:
    st.info("왼쪽에서 세션을 시작하세요.")
    st.stop()

try:
    state = load_state(sid)
except RuntimeError as e:
    st.error(f"세션을 불러오지 못했습니다: {e}")
    st.session_state.pop("sid", None)
    st.stop()

status_icon = {"saved": "🟢 저장됨", "saving": "🟡 저장 중", "unsaved": "🔴 저장 안 됨"}
col_name, col_status = st.columns([3, 1])
with col_name:
    new_name = st.text_input("프로젝트 이름", value=state["name"])
    if new_name != state["name"]:
        api("PUT", f"/api/sessions/{sid}/name", json={"name": new_name})
with col_status:
    st.write(status_icon.get(state["save_status"], state["save_status"]))
    if st.button("지금 저장"):
        try:
            api("POST", f"/api/sessions/{sid}/save")
        except RuntimeError as e:
            st.error(f"저장 실패: {e}")

if state.get("error"):
    st.warning(f"⚠️ {state['error']} (다시 시도해주세요)")

# --- 업로드 / 전사 ---
video = st.file_uploader("영상 업로드", type=["mp4", "mov", "webm", "mkv"])
col1, col2 = st.columns(2)
with col1:
    language = st.text_input("자막 언어", value="English")
with col2:
    model = st.selectbox("모델", ["gemini-3-flash-preview", "gemini-3-pro-preview"])

if video and st.button("🎙️ AI 자막 만들기"):
    with st.spinner("AI 전사 중... (수 초~수 분)"):
        try:
            files = {"video": (video.name, video.getvalue(), video.type)}
            api("POST", f"/api/sessions/{sid}/media", files=files,
                data={"language": language, "model": model}, timeout=600)
        except (requests.RequestException, RuntimeError) as e:
            st.error(f"전사 실패: {e}")
    state = load_state(sid)

# --- 자막 편집 ---
captions = state["captions"]
st.subheader(f"타임라인 ({len(captions)})")

selected = []
for cap in captions:
    c1, c2 = st.columns([1, 5])
    with c1:
        st.caption(f"{cap['startTime']:.2f}s - {cap['endTime']:.2f}s")
        if st.checkbox("선택", key=f"sel_{cap['id']}"):
            selected.append(cap["id"])
    with c2:
        text = st.text_area("text", value=cap["text"], key=f"txt_{cap['id']}", label_visibility="collapsed", height=68)
        if text != cap["text"]:
            api("PATCH", f"/api/sessions/{sid}/captions/{cap['id']}", json={"text": text})

if selected and st.button(f"⏱️ 선택한 {len(selected)}개 싱크 다시 맞추기", disabled=not state["has_media"]):
    with st.spinner("싱크 재조정 중..."):
        try:
            out = api("POST", f"/api/sessions/{sid}/resync", json={"ids": selected}, timeout=600).json()
            st.success(f"{out['updated']}개 반영")
        except (requests.RequestException, RuntimeError) as e:
            st.error(f"싱크 실패: {e}")

# --- 스타일 ---
st.subheader("스타일")
styles = api("GET", "/api/styles").json()
tpl_names = {t["name"]: t["id"] for t in styles["templates"]}
tpl = st.radio("프리셋", list(tpl_names), horizontal=True)
if st.button("프리셋 적용"):
    api("POST", f"/api/sessions/{sid}/style/template/{tpl_names[tpl]}")

# --- 내보내기 ---
st.subheader("내보내기")
e1, e2, e3, e4 = st.columns(4)
with e1:
    words_per_line = st.number_input("줄당 단어", min_value=1, max_value=20, value=5)
with e2:
    lines_per_caption = st.number_input("블록당 줄", min_value=1, max_value=4, value=2)
with e3:
    start = st.number_input("시작(초, 0=처음)", min_value=0.0, value=0.0)
with e4:
    end = st.number_input("끝(초, 0=끝까지)", min_value=0.0, value=0.0)

config = {"wordsPerLine": int(words_per_line), "linesPerCaption": int(lines_per_caption)}
if start > 0:
    config["customStartTime"] = start
if end > 0:
    config["customEndTime"] = end

try:
    srt = api("POST", f"/api/sessions/{sid}/export/srt", json=config)
except (requests.RequestException, RuntimeError) as e:
    st.error(f"SRT 생성 실패: {e}")
else:
    filename = state["name"] if state["name"].lower().endswith(".srt") else f"{state['name']}.srt"
    st.download_button("📄 SRT 다운로드", data=srt.text.encode("utf-8"), file_name=filename, mime="text/plain")

if st.button("🎞️ 자막 입힌 영상 만들기", disabled=not state["has_media"]):
    with st.spinner("영상 생성 중..."):
        try:
            out = api("POST", f"/api/sessions/{sid}/export/video", json=config, timeout=600).json()
        except (requests.RequestException, RuntimeError) as e:
            st.error(f"내보내기 실패: {e}")
            st.stop()
    st.video(f"{API_BASE}{out['video_url']}")
    st.markdown(f"[결과 영상 열기]({API_BASE}{out['video_url']})")
