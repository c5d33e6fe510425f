import os
import tempfile

import matplotlib.pyplot as plt
import pandas as pd
import streamlit as st

from survey_report.app.config import DATE_COLUMNS, Settings
from survey_report.app.errors import AppError
from survey_report.app.logging import setup_logging
from survey_report.db.importer import ResponseImporter
from survey_report.db.repository import SQLiteSurveyRepository
from survey_report.db.responses import SQLiteResponseStore
from survey_report.report.charts import plot_distribution
from survey_report.report.entries import Distribution, RawList, Report
from survey_report.report.export import report_to_frame, report_to_json, summary_frame
from survey_report.report.service import SurveyReportService


# --- Page setup ---
st.set_page_config(
    page_title="Survey report",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded",
)


@st.cache_resource
def get_settings() -> Settings:
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_json)
    return settings


settings = get_settings()

# Survey definition tables are created on first start.
SQLiteSurveyRepository(settings.db_path, settings.table_prefix).init_schema()
service = SurveyReportService.from_settings(settings)

if "report" not in st.session_state:
    st.session_state.report = None


def render_report(report: Report) -> None:
    if not len(report):
        st.info("No question matched this request.")
        return

    for group, items in report.items():
        st.subheader(group)
        for key, qr in items.items():
            flags = " · ".join(
                f for f, on in (("mandatory", qr.mandatory), ("numeric", qr.numeric_only), ("hidden", qr.hidden)) if on
            )
            with st.expander(f"{qr.code} ({qr.type}) {qr.text}"):
                st.caption(f"`{key}` {flags}")
                if qr.error:
                    st.warning(qr.error)
                elif isinstance(qr.result, Distribution):
                    rows = [e.to_dict() | {"code": e.code} for e in qr.result]
                    st.dataframe(pd.DataFrame(rows, columns=["code", "label", "count", "percentage"]), hide_index=True)
                    fig = plot_distribution(qr)
                    if fig is not None:
                        st.pyplot(fig)
                        plt.close(fig)
                elif isinstance(qr.result, RawList):
                    st.write(f"{len(qr.result)} response(s)")
                    st.dataframe(pd.DataFrame({"value": list(qr.result.values)}), hide_index=True)


# --- Sidebar: responses import ---
with st.sidebar:
    st.header("📂 Responses")
    import_sid = st.number_input("Survey id", min_value=1, step=1, value=1, key="import_sid")
    uploaded_file = st.file_uploader("Response export (CSV/Excel)", type=["csv", "xlsx"])
    replace_rows = st.checkbox("Replace existing responses", value=False)

    if uploaded_file and st.button("Import"):
        with st.status("Importing responses...", expanded=True) as status:
            suffix = os.path.splitext(uploaded_file.name)[1]
            with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
                tmp.write(uploaded_file.getbuffer())
                temp_path = tmp.name
            try:
                importer = ResponseImporter(settings.db_path, settings.table_prefix)
                if suffix.lower() == ".csv":
                    res = importer.import_csv(temp_path, int(import_sid), replace=replace_rows)
                else:
                    res = importer.import_excel(temp_path, int(import_sid), replace=replace_rows)
                status.write(f"✅ {res.inserted_responses} response(s) stored.")
                if res.skipped_columns:
                    status.write(f"Skipped columns: {', '.join(res.skipped_columns)}")
                status.update(label="Import complete", state="complete", expanded=False)
            except AppError as e:
                status.update(label="Import failed", state="error")
                st.error(str(e))
            finally:
                os.remove(temp_path)

# --- Main: report request ---
st.title("📊 Survey report")

c1, c2, c3 = st.columns(3)
survey_id = int(c1.number_input("Survey id", min_value=1, step=1, value=1))
language = c2.text_input("Language (blank = survey default)").strip() or None
cutoff = int(c3.number_input("Cutoff", min_value=0, step=1, value=settings.default_cutoff))

mode = st.radio(
    "Respondents",
    ["Definitions only", "All responses", "Response ids", "Tokens", "Date range"],
    horizontal=True,
)

ids_text = tokens_text = ""
date_from = date_to = None
date_column = settings.date_column
if mode == "Response ids":
    ids_text = st.text_input("Ids (comma separated)")
elif mode == "Tokens":
    tokens_text = st.text_input("Tokens (comma separated)")
elif mode == "Date range":
    d1, d2, d3 = st.columns(3)
    date_from = d1.date_input("From")
    date_to = d2.date_input("To")
    date_column = d3.selectbox("Date column", DATE_COLUMNS, index=DATE_COLUMNS.index(settings.date_column))

with st.expander("Question filters"):
    allow = [s.strip() for s in st.text_area("Only these keys (one per line)").splitlines() if s.strip()]
    deny = [s.strip() for s in st.text_area("Exclude these keys (one per line)").splitlines() if s.strip()]
    strip_markup = st.checkbox("Strip markup", value=settings.strip_markup)

if st.button("Build report", type="primary"):
    service.set_cutoff(cutoff)
    service.set_date_column(date_column)
    service.set_strip_markup(strip_markup)
    try:
        if mode == "Definitions only":
            report = service.get_only_questions(survey_id, language, allow, deny)
        elif mode == "All responses":
            ids = SQLiteResponseStore(settings.db_path, survey_id, settings.table_prefix).all_ids()
            report = service.parse_by_ids(survey_id, ids, language, allow, deny)
        elif mode == "Response ids":
            ids = [s.strip() for s in ids_text.split(",") if s.strip()]
            report = service.parse_by_ids(survey_id, ids, language, allow, deny)
        elif mode == "Tokens":
            tokens = [s.strip() for s in tokens_text.split(",") if s.strip()]
            report = service.parse_by_tokens(survey_id, tokens, language, allow, deny)
        else:
            report = service.parse_by_dates(survey_id, f"{date_from} 00:00:00", f"{date_to} 23:59:59", language, allow, deny)
        st.session_state.report = report
    except AppError as e:
        st.session_state.report = None
        st.error(str(e))

report = st.session_state.report
if report is not None:
    st.divider()
    st.dataframe(summary_frame(report), hide_index=True)
    dl1, dl2 = st.columns(2)
    dl1.download_button("Download JSON", report_to_json(report), file_name=f"survey_{survey_id}_report.json")
    dl2.download_button(
        "Download CSV",
        report_to_frame(report).to_csv(index=False),
        file_name=f"survey_{survey_id}_report.csv",
    )
    render_report(report)
