from io import BytesIO

import pandas as pd
from openpyxl.utils import get_column_letter

# (header, row key, column width) in sheet order
COLUMNS = [
    ('Record ID', 'id', 12),
    ('User Name', 'name', 20),
    ('User Email', 'email', 28),
    ('Input', 'input_value', 12),
    ('Output', 'output_value', 12),
    ('Remaining', 'remaining_value', 12),
    ('Note', 'note', 30),
    ('Created At (UTC)', 'created_at', 24),
]

SHEET_NAME = 'All Records'
EXPORT_FILENAME = 'all-records.xlsx'
XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def _format_timestamp(value):
    if value is None:
        return ''
    if hasattr(value, 'strftime'):
        return value.strftime(TIMESTAMP_FORMAT)
    return str(value)


def records_frame(rows):
    """Build the export table from joined record rows, keeping their order."""
    keys = [key for _, key, _ in COLUMNS]
    df = pd.DataFrame([{key: row.get(key) for key in keys} for row in rows], columns=keys)
    df['created_at'] = df['created_at'].map(_format_timestamp)
    df.columns = [header for header, _, _ in COLUMNS]
    return df


def build_workbook(rows):
    """Serialize all rows into an .xlsx document held in memory."""
    df = records_frame(rows)
    buf = BytesIO()
    with pd.ExcelWriter(buf, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        sheet = writer.sheets[SHEET_NAME]
        for idx, (_, _, width) in enumerate(COLUMNS, start=1):
            sheet.column_dimensions[get_column_letter(idx)].width = width
    return buf.getvalue()
