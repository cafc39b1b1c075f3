import re

import numpy as np
import pandas as pd

from dependency_scheduler.cpm.dates import project_schedule_dates
from dependency_scheduler.cpm.graph import Dependency, Task

DATE_COLUMNS = ["Start", "Finish"]

# ---------------------------------------------------------
# PREDECESSOR PARSING
# ---------------------------------------------------------

PRED_CELL_PATTERN = re.compile(
    r"""
    ^\s*
    (?P<pred>\d+)
    \s*
    (?P<type>FS|SS|FF|SF)?    # optional type
    \s*
    (?P<lag>[+-]\s*\d+(?:\.\d+)?)?   # optional +N or -N
    \s*[dD]?                  # optional 'd'
    \s*$
    """,
    re.VERBOSE | re.IGNORECASE,
)


def parse_predecessor_cell(cell):
    """
    Parse a Predecessors cell like:
      "5"
      "5FS+3d"
      "12SS-2"
      "7FF+1d, 9SS"
    into a list of tuples:
      [(5, "FS", 3.0), (12, "SS", -2.0), ...]

    Unparseable parts are skipped; the schedule validator reports them.
    """
    if cell is None:
        return []
    if isinstance(cell, float) and np.isnan(cell):
        return []

    text = str(cell).strip()
    if not text:
        return []

    results = []
    for raw in re.split(r"[;,]", text):
        s = raw.strip()
        if not s:
            continue
        m = PRED_CELL_PATTERN.match(s)
        if not m:
            continue

        pred = int(m.group("pred"))
        dep_type = (m.group("type") or "FS").upper()
        lag_str = m.group("lag")
        lag = float(lag_str.replace(" ", "")) if lag_str else 0.0

        results.append((pred, dep_type, lag))

    return results

# ---------------------------------------------------------
# FIELD CLEANUP & PREPARATION
# ---------------------------------------------------------

def normalize_schedule_frame(df_input: pd.DataFrame) -> pd.DataFrame:
    """
    Clean and normalize a task table (MS Project style export).

    Guarantees:
      - TaskID is an integer
      - Duration is numeric, blanks read as 0
      - Start / Finish are datetime (or NaT)
      - Name and Predecessors exist
    """
    df = df_input.copy()
    df.columns = [str(c).strip() for c in df.columns]

    # ---- TaskID ----
    if "TaskID" not in df.columns:
        raise ValueError("Missing required column: 'TaskID'")
    df["TaskID"] = pd.to_numeric(df["TaskID"], errors="coerce")
    if df["TaskID"].isna().any():
        raise ValueError("Non-numeric or blank TaskID values found.")
    df["TaskID"] = df["TaskID"].astype(int)

    # ---- Duration ----
    if "Duration" not in df.columns:
        raise ValueError("Duration column missing; cannot compute CPM.")
    df["Duration"] = pd.to_numeric(df["Duration"], errors="coerce").fillna(0.0)

    # ---- Dates ----
    for col in DATE_COLUMNS:
        if col in df.columns:
            df[col] = pd.to_datetime(df[col], errors="coerce")
        else:
            df[col] = pd.NaT

    if "Predecessors" not in df.columns:
        df["Predecessors"] = ""
    if "Name" not in df.columns:
        df["Name"] = df["TaskID"].astype(str)
    df["Name"] = df["Name"].fillna("").astype(str)

    return df


def _date_or_none(value):
    return None if pd.isna(value) else value


def load_schedule_frame(df_input: pd.DataFrame):
    """
    Turn a task table into (tasks, dependencies) for the engine.

    References to unknown TaskIDs are kept: the engine reports them as
    diagnostics and the validators as errors.
    """
    df = normalize_schedule_frame(df_input)

    tasks = []
    dependencies = []
    for _, row in df.iterrows():
        tid = int(row["TaskID"])
        tasks.append(Task(
            id=tid,
            duration=float(row["Duration"]),
            name=row["Name"],
            start_date=_date_or_none(row["Start"]),
            due_date=_date_or_none(row["Finish"]),
        ))
        for pred, dep_type, lag in parse_predecessor_cell(row["Predecessors"]):
            dependencies.append(Dependency(pred, tid, dep_type, lag))

    return tasks, dependencies

# ---------------------------------------------------------
# COMPILE RESULTS
# ---------------------------------------------------------

def schedule_to_frame(df: pd.DataFrame, result, project_start_date=None) -> pd.DataFrame:
    """
    Attach a ScheduleResult to the task table:
      ES, EF, LS, LF, Slack, Critical
    and, with a project start date, PlannedStart / PlannedFinish.
    """
    df2 = normalize_schedule_frame(df)
    timings = result.timings

    df2["ES"] = df2["TaskID"].map(lambda t: timings[t].earliest_start if t in timings else np.nan)
    df2["EF"] = df2["TaskID"].map(lambda t: timings[t].earliest_finish if t in timings else np.nan)
    df2["LS"] = df2["TaskID"].map(lambda t: timings[t].latest_start if t in timings else np.nan)
    df2["LF"] = df2["TaskID"].map(lambda t: timings[t].latest_finish if t in timings else np.nan)
    df2["Slack"] = df2["TaskID"].map(dict(result.slack_by_task))
    df2["Critical"] = df2["TaskID"].isin(result.critical_path)

    if project_start_date is not None:
        planned = project_schedule_dates(result, project_start_date)
        df2["PlannedStart"] = df2["TaskID"].map({t: d.start_date for t, d in planned.items()})
        df2["PlannedFinish"] = df2["TaskID"].map({t: d.end_date for t, d in planned.items()})

    return df2
