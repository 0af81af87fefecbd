"""
Streamlit UI -- Warehouse Query Pipeline.

Features:
  - Sidebar with the named examples from the API
  - Editable QueryRequest / RenderSpec (JSON)
  - Generated SQL preview (dry run)
  - Results table with download button
  - Faceted line chart (Vega-Lite) and marker map (folium)
  - Error display for authentication / query / transport / render failures
"""
import json

import httpx
import pandas as pd
import streamlit as st
import streamlit.components.v1 as components


API_BASE = "http://localhost:8000"
_TIMEOUT = 120

st.set_page_config(
    page_title="Warehouse Query Pipeline",
    page_icon="world_map",
    layout="wide",
    initial_sidebar_state="expanded",
)


if "examples" not in st.session_state:
    st.session_state.examples = None

if "request_json" not in st.session_state:
    st.session_state.request_json = json.dumps(
        {"source": "pm25_frm_daily_summary", "columns": ["state_name"], "group_by": ["state_name"],
         "aggregations": {"avg_pm25": {"column": "arithmetic_mean", "func": "mean"}}, "limit": 60},
        indent=2,
    )

if "render_kind" not in st.session_state:
    st.session_state.render_kind = "(table only)"

if "render_spec_json" not in st.session_state:
    st.session_state.render_spec_json = "{}"

if "last_response" not in st.session_state:
    st.session_state.last_response = None



def _load_examples():
    """Fetch /examples from the API; cache in session_state."""
    try:
        st.session_state.examples = httpx.get(f"{API_BASE}/examples", timeout=5).json()
    except Exception:
        st.session_state.examples = None


def _use_example(example: dict):
    st.session_state.request_json = json.dumps(example["request"], indent=2)
    st.session_state.render_kind = example.get("render_kind") or "(table only)"
    st.session_state.render_spec_json = json.dumps(example.get("render_spec") or {}, indent=2)
    st.session_state.last_response = None


def _post(path: str, payload: dict) -> dict | None:
    """POST to the API; show the pipeline error and return None on failure."""
    try:
        resp = httpx.post(f"{API_BASE}{path}", json=payload, timeout=_TIMEOUT)
    except httpx.ConnectError:
        st.error("Cannot reach the API. Start it with:\n```\nuvicorn src.api.main:app --reload\n```")
        return None
    if resp.status_code >= 400:
        try:
            body = resp.json()
            kind = body.get("error", f"HTTP {resp.status_code}")
            detail = body.get("detail", resp.text)
        except ValueError:
            kind, detail = f"HTTP {resp.status_code}", resp.text
        st.error(f"**{kind}:** {detail}")
        return None
    return resp.json()


with st.sidebar:
    st.title("Examples")

    if st.button("Refresh examples", use_container_width=True):
        _load_examples()

    if st.session_state.examples is None:
        _load_examples()

    examples = st.session_state.examples

    if examples:
        for ex in examples:
            if st.button(ex["name"], key=f"ex_{ex['name']}", use_container_width=True):
                _use_example(ex)
            st.caption(ex.get("description", ""))
    else:
        st.info("API not reachable -- start the FastAPI server first.\n\n```\nuvicorn src.api.main:app --reload\n```")

    st.divider()
    st.caption("Warehouse Query Pipeline v0.1")



st.title("Warehouse Query Pipeline")
st.markdown("Describe a data pull, preview its SQL, run it on BigQuery and plot the result.")

left, right = st.columns(2)
with left:
    request_text = st.text_area("QueryRequest (JSON)", key="request_json", height=320)
with right:
    kinds = ["(table only)", "line_chart_by_group", "map_with_markers"]
    render_kind = st.selectbox("Render as", kinds, key="render_kind")
    spec_text = st.text_area("RenderSpec (JSON)", key="render_spec_json", height=240)

try:
    request_payload = json.loads(request_text)
    spec_payload = json.loads(spec_text or "{}")
except json.JSONDecodeError as exc:
    st.error(f"Invalid JSON: {exc}")
    st.stop()

c1, c2 = st.columns(2)
if c1.button("Show SQL", use_container_width=True):
    data = _post("/query/compile", request_payload)
    if data:
        st.code(data["sql"], language="sql")

if c2.button("Run", type="primary", use_container_width=True):
    with st.spinner("Querying the warehouse..."):
        query_data = _post("/query", request_payload)
        artifact_data = None
        if query_data and render_kind != "(table only)":
            artifact_data = _post("/render/rows", {
                "rows": query_data["rows"],
                "kind": render_kind,
                "spec": spec_payload,
                "include_html": True,
            })
    if query_data:
        st.session_state.last_response = {"query": query_data, "render": artifact_data}


def _render_artifact(render_data: dict):
    artifact = render_data["artifact"]
    st.subheader(artifact["title"])
    if artifact["kind"] == "line_chart_by_group":
        st.vega_lite_chart(artifact["body"], use_container_width=False)
    elif render_data.get("html"):
        skipped = artifact["body"].get("skipped", 0)
        if skipped:
            st.caption(f"{skipped} row(s) without coordinates left off the map.")
        components.html(render_data["html"], height=560)


response = st.session_state.last_response
if response:
    query_data = response["query"]
    with st.expander("Generated SQL", expanded=False):
        st.code(query_data["sql"], language="sql")
    st.caption(f"{query_data['row_count']} rows · {query_data['latency_ms']} ms")

    if response.get("render"):
        _render_artifact(response["render"])

    if query_data["rows"]:
        st.subheader("Results")
        df = pd.DataFrame(query_data["rows"], columns=query_data["columns"])
        st.dataframe(df, use_container_width=True)
        st.download_button(
            "Download CSV",
            df.to_csv(index=False),
            file_name="query_results.csv",
            mime="text/csv",
        )
    else:
        st.info("The query returned no rows.")
