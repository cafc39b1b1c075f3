import re

import pandas as pd

from dependency_scheduler.cpm.dates import validate_task_dates
from dependency_scheduler.cpm.frame import load_schedule_frame, parse_predecessor_cell
from dependency_scheduler.cpm.graph import build_graph
from dependency_scheduler.cpm.topology import topological_order


# ------------------------------------------------------------------
# Helper: make a consistent issue dictionary
# ------------------------------------------------------------------
def make_issue(task_id, name, severity, issue_type, description, suggestion):
    return {
        "TaskID": task_id,
        "Name": name,
        "Severity": severity,
        "IssueType": issue_type,
        "Description": description,
        "SuggestedFix": suggestion,
    }


# ------------------------------------------------------------------
# VALID PREDECESSOR FORMAT
# Supports:
#  - 5
#  - 12FS
#  - 12FS+2
#  - 12FS+2d
#  - 5SS-3
#  - 10, 12FS+2d, 99SS
# ------------------------------------------------------------------
PRED_PATTERN = re.compile(
    r"""
    ^\s*
    \d+                                # first task ID
    \s*(?:FS|SS|FF|SF)?                # optional link type
    \s*(?:[+-]\s*\d+(?:\.\d+)?\s*d?)?  # optional lag
    (?:                                # additional predecessors
        \s*[,;]\s*
        \d+
        \s*(?:FS|SS|FF|SF)?
        \s*(?:[+-]\s*\d+(?:\.\d+)?\s*d?)?
    )*
    \s*$
    """,
    re.IGNORECASE | re.VERBOSE,
)

REQUIRED_COLUMNS = ["TaskID", "Name", "Duration", "Start", "Finish", "Predecessors"]


def _is_blank_cell(cell):
    return cell is None or pd.isna(cell) or str(cell).strip() in ("", "nan", "None")


def valid_pred_format(cell):
    if _is_blank_cell(cell):
        return True
    return bool(PRED_PATTERN.match(str(cell).strip()))


# ------------------------------------------------------------------
# MAIN VALIDATION ENGINE
# ------------------------------------------------------------------
def validate_schedule(df):
    """
    Inspect a task table before scheduling it.

    Returns a list of issue dicts (see make_issue). Critical issues stop
    the later checks that depend on them.
    """
    issues = []

    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]

    # --- Required Columns ---
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        issues.append(make_issue(
            "N/A", "N/A", "critical", "MissingColumns",
            f"Missing required columns: {missing}",
            "Add the missing columns to the task table before importing."
        ))
        return issues

    # ------------------------------------------------------------------
    # 1. TaskID validation
    # ------------------------------------------------------------------
    ids = pd.to_numeric(df["TaskID"], errors="coerce")

    if df["TaskID"].isna().any():
        issues.append(make_issue(
            None, None, "critical", "TaskIDBlank",
            "Some TaskID values are blank.",
            "Every task needs a numeric TaskID."
        ))
    elif ids.isna().any():
        issues.append(make_issue(
            None, None, "critical", "TaskIDNonNumeric",
            "Non-numeric TaskID values found.",
            "TaskID must be an integer. Remove text values."
        ))

    dups = df[ids.duplicated() & ids.notna()]["TaskID"].tolist()
    if dups:
        issues.append(make_issue(
            ", ".join(map(str, dups)), "",
            "critical", "DuplicateTaskID",
            f"Duplicate TaskIDs detected: {dups}",
            "Renumber tasks so every TaskID is unique."
        ))

    if any(i["Severity"] == "critical" for i in issues):
        return issues

    df["TaskID"] = ids.astype(int)

    # ------------------------------------------------------------------
    # 2. Duration validation
    # ------------------------------------------------------------------
    durations = pd.to_numeric(df["Duration"], errors="coerce")
    if (durations.isna() & df["Duration"].notna()).any():
        issues.append(make_issue(
            None, None, "error", "DurationInvalid",
            "Some durations contain text or invalid values.",
            "Remove values like 'TBD'. Only use numbers."
        ))

    for _, row in df[durations < 0].iterrows():
        issues.append(make_issue(
            row["TaskID"], row["Name"],
            "critical", "NegativeDuration",
            f"Duration is negative ({row['Duration']}).",
            "Duration must be zero or positive."
        ))

    # ------------------------------------------------------------------
    # 3. Date parsing
    # ------------------------------------------------------------------
    for col in ["Start", "Finish"]:
        raw = df[col]
        parsed = pd.to_datetime(raw, errors="coerce")
        bad_count = int((parsed.isna() & raw.notna()).sum())
        df[col] = parsed

        if bad_count > 0:
            issues.append(make_issue(
                None, None,
                "error" if bad_count < len(df) / 10 else "critical",
                "InvalidDate",
                f"{col} has {bad_count} unparseable date(s).",
                f"Fix invalid {col} values before importing."
            ))

    # ------------------------------------------------------------------
    # 4. Logical date rules
    # ------------------------------------------------------------------
    for _, row in df[df["Start"] >= df["Finish"]].iterrows():
        issues.append(make_issue(
            row["TaskID"], row["Name"],
            "critical", "InvalidDateOrder",
            "Start date is not before Finish date.",
            "Fix Start/Finish ordering."
        ))

    # ------------------------------------------------------------------
    # 5. Predecessor validation
    # ------------------------------------------------------------------
    all_ids = set(df["TaskID"])
    format_ok = True

    for _, row in df.iterrows():
        tid = row["TaskID"]
        name = row["Name"]
        cell = row["Predecessors"]

        if _is_blank_cell(cell):
            continue

        if not valid_pred_format(cell):
            format_ok = False
            issues.append(make_issue(
                tid, name,
                "critical", "InvalidPredecessorFormat",
                f"Invalid predecessor format: '{cell}'",
                "Valid examples: 5, 12FS, 12FS+2d, 5SS-3, 10, 12FS+1d"
            ))
            continue

        for pred_id, _, _ in parse_predecessor_cell(cell):
            if pred_id == tid:
                issues.append(make_issue(
                    tid, name,
                    "critical", "SelfDependency",
                    "Task depends on itself.",
                    "Remove the task from its own predecessor list."
                ))
            elif pred_id not in all_ids:
                issues.append(make_issue(
                    tid, name,
                    "error", "MissingPredecessorTask",
                    f"Task depends on missing TaskID {pred_id}.",
                    "Fix dependency: remove or correct missing TaskID."
                ))

    # ------------------------------------------------------------------
    # 6. Graph-level checks (only on a table the engine can load)
    # ------------------------------------------------------------------
    if any(i["IssueType"] == "NegativeDuration" for i in issues):
        return issues

    tasks, dependencies = load_schedule_frame(df)

    if format_ok:
        # self-loops are already reported as SelfDependency
        for cycle in topological_order(build_graph(tasks, dependencies)).cycles:
            if len(cycle) <= 2:
                continue
            issues.append(make_issue(
                ", ".join(map(str, cycle[:-1])), "",
                "critical", "CircularDependency",
                f"Circular dependency: {' -> '.join(map(str, cycle))}",
                "Remove one of the links in the loop."
            ))

    for task in tasks:
        result = validate_task_dates(task, tasks, dependencies)
        for error in result.errors:
            # covered by MissingPredecessorTask / InvalidDateOrder above
            if error.startswith("Predecessor task not found") or error.startswith("Start date must be"):
                continue
            issues.append(make_issue(
                task.id, task.name,
                "warning", "DependencyDateConflict",
                error,
                "Move the task dates or relax the dependency."
            ))

    return issues
