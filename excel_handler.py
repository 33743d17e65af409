import json
import logging
import os
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

import openpyxl
import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from werkzeug.utils import secure_filename

BRAND_COLOR = '722F37'

STUDENT_COLUMNS = ['Student ID', 'First Name', 'Last Name', 'Class', 'Gender',
                   'Date of Birth', 'Parent Phone', 'Status']
PLACEMENT_COLUMNS = ['Student Name', 'Student ID', 'School', 'Program',
                     'Placement Date', 'Status', 'Notes']
REPORT_COLUMNS = ['Student Name', 'Student ID', 'School', 'Program',
                  'Status', 'Placement Date']

# Resolved placement keys (see queries.resolve_placement) -> column headers
PLACEMENT_FIELDS = {
    'studentName': 'Student Name',
    'studentId': 'Student ID',
    'school': 'School',
    'program': 'Program',
    'placementDate': 'Placement Date',
    'status': 'Status',
    'notes': 'Notes',
}


class ExcelHandler:
    def __init__(self, export_folder: str = 'exports'):
        self.logger = logging.getLogger(__name__)
        self.export_folder = export_folder

    def read_student_data(self, filepath: str) -> Optional[List[Dict[str, Any]]]:
        """
        Read student rows from an Excel or CSV file.
        Recognised columns: Student ID, First Name, Last Name, Class, Gender,
        Date of Birth, Parent Phone. Only columns present in the file are mapped;
        a missing Student ID is filled in later by the store.
        Returns None when the file cannot be parsed as a student table.
        """
        try:
            if filepath.lower().endswith('.csv'):
                df = pd.read_csv(filepath)
            else:
                df = pd.read_excel(filepath)

            # Normalize column names (handle case variations and spaces)
            df.columns = df.columns.astype(str).str.strip().str.lower().str.replace(' ', '_')

            column_mappings = {
                'student_id': ['student_id', 'studentid', 'student_no', 'id_number'],
                'first_name': ['first_name', 'firstname', 'given_name'],
                'last_name': ['last_name', 'lastname', 'surname'],
                'class_name': ['class', 'class_name', 'form'],
                'gender': ['gender', 'sex'],
                'date_of_birth': ['date_of_birth', 'dob', 'birth_date'],
                'parent_phone': ['parent_phone', 'parent_contact', 'guardian_phone'],
            }

            mapped_columns = {}
            for expected_col, possible_names in column_mappings.items():
                for possible_name in possible_names:
                    if possible_name in df.columns:
                        mapped_columns[expected_col] = possible_name
                        break

            if not mapped_columns:
                self.logger.error(f"No student columns found in {filepath}: {list(df.columns)}")
                return None

            result_df = pd.DataFrame()
            for standard_name, original_name in mapped_columns.items():
                result_df[standard_name] = df[original_name]

            return self._clean_student_data(result_df)

        except Exception as e:
            self.logger.error(f"Error reading student file: {str(e)}")
            return None

    def _clean_student_data(self, df: pd.DataFrame) -> List[Dict[str, Any]]:
        """
        Turn the mapped frame into plain row dicts: blank cells dropped,
        spreadsheet numbers and timestamps converted to strings and dates.
        """
        df = df.dropna(how='all')
        rows = []
        for record in df.to_dict('records'):
            row = {}
            for key, value in record.items():
                if pd.isna(value):
                    continue
                if key == 'date_of_birth':
                    value = self._parse_date(value)
                elif isinstance(value, float) and value.is_integer():
                    # Numeric ids and phone numbers come back as floats
                    value = str(int(value))
                else:
                    value = str(value).strip()
                if value == '':
                    continue
                row[key] = value
            rows.append(row)
        return rows

    def _parse_date(self, value):
        if isinstance(value, (pd.Timestamp, datetime)):
            return value.date()
        if isinstance(value, date):
            return value
        text = str(value).strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return pd.to_datetime(text, dayfirst=True).date()
        except (ValueError, TypeError):
            # Left as text so record validation reports the bad cell
            return text

    # Row projections

    @staticmethod
    def student_rows(students: Sequence) -> List[Dict[str, Any]]:
        return [{
            'Student ID': s.student_id,
            'First Name': s.first_name,
            'Last Name': s.last_name,
            'Class': s.class_name,
            'Gender': s.gender,
            'Date of Birth': s.date_of_birth.strftime('%d/%m/%Y') if s.date_of_birth else '',
            'Parent Phone': s.parent_phone,
            'Status': s.status,
        } for s in students]

    @staticmethod
    def placement_rows(resolved: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [{header: row.get(key) for key, header in PLACEMENT_FIELDS.items() if key in row}
                for row in resolved]

    # Exports

    def _timestamped(self, name: str, extension: str) -> str:
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        filename = secure_filename(f"{name}_{timestamp}.{extension}")
        os.makedirs(self.export_folder, exist_ok=True)
        return os.path.join(self.export_folder, filename)

    def export_table(self, rows: List[Dict[str, Any]], columns: List[str], name: str,
                     sheet_title: str = 'Sheet1') -> Optional[str]:
        """
        Write rows to a single-sheet workbook, header in row 1.
        The header row uses the same names the importer recognises, so an
        exported student sheet can be imported again.
        """
        try:
            wb = openpyxl.Workbook()
            ws = wb.active
            ws.title = sheet_title

            header_font = Font(bold=True, color='FFFFFF')
            header_fill = PatternFill(start_color=BRAND_COLOR, end_color=BRAND_COLOR, fill_type='solid')
            border = Border(
                left=Side(style='thin'),
                right=Side(style='thin'),
                top=Side(style='thin'),
                bottom=Side(style='thin')
            )

            for col, header in enumerate(columns, 1):
                cell = ws.cell(row=1, column=col, value=header)
                cell.font = header_font
                cell.fill = header_fill
                cell.border = border
                cell.alignment = Alignment(horizontal='center', vertical='center')

            for row_num, row in enumerate(rows, 2):
                for col, header in enumerate(columns, 1):
                    value = row.get(header)
                    cell = ws.cell(row=row_num, column=col, value='' if value is None else value)
                    cell.border = border

            # Auto-adjust column widths
            for col_idx, header in enumerate(columns, 1):
                max_length = len(header)
                for row in rows:
                    value = row.get(header)
                    if value:
                        max_length = max(max_length, len(str(value)))
                ws.column_dimensions[get_column_letter(col_idx)].width = min(max_length + 2, 50)

            filepath = self._timestamped(name, 'xlsx')
            wb.save(filepath)

            self.logger.info(f"Exported {len(rows)} rows to {filepath}")
            return filepath

        except Exception as e:
            self.logger.error(f"Error exporting {name}: {str(e)}")
            return None

    def export_pdf(self, rows: List[Dict[str, Any]], columns: List[str], name: str,
                   title: str) -> Optional[str]:
        """Render rows as a titled PDF table."""
        try:
            filepath = self._timestamped(name, 'pdf')
            doc = SimpleDocTemplate(filepath, pagesize=landscape(A4), title=title)
            styles = getSampleStyleSheet()

            data = [columns] + [['' if row.get(col) is None else str(row.get(col)) for col in columns]
                                for row in rows]
            table = Table(data, repeatRows=1)
            table.setStyle(TableStyle([
                ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(f'#{BRAND_COLOR}')),
                ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
                ('FONTSIZE', (0, 0), (-1, -1), 8),
                ('GRID', (0, 0), (-1, -1), 0.25, colors.grey),
                ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ]))

            doc.build([Paragraph(title, styles['Title']), Spacer(1, 12), table])

            self.logger.info(f"Exported PDF to {filepath}")
            return filepath

        except Exception as e:
            self.logger.error(f"Error exporting PDF {name}: {str(e)}")
            return None

    def export_json(self, data: Dict[str, Any], name: str) -> Optional[str]:
        """Write a report object as an indented JSON document."""
        try:
            filepath = self._timestamped(name, 'json')
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, default=str)

            self.logger.info(f"Exported report to {filepath}")
            return filepath

        except Exception as e:
            self.logger.error(f"Error exporting report {name}: {str(e)}")
            return None

    def export_students(self, students: Sequence, fmt: str = 'xlsx') -> Optional[str]:
        rows = self.student_rows(students)
        if fmt == 'pdf':
            return self.export_pdf(rows, STUDENT_COLUMNS, 'students_export', 'Students')
        return self.export_table(rows, STUDENT_COLUMNS, 'students_export', 'Students')

    def export_placements(self, resolved: Sequence[Dict[str, Any]], fmt: str = 'xlsx') -> Optional[str]:
        rows = self.placement_rows(resolved)
        if fmt == 'pdf':
            return self.export_pdf(rows, PLACEMENT_COLUMNS, 'placements_export', 'Student Placements')
        return self.export_table(rows, PLACEMENT_COLUMNS, 'placements_export', 'Placements')

    def export_placement_report(self, report_type: str, resolved: Sequence[Dict[str, Any]]) -> Optional[str]:
        rows = self.placement_rows(resolved)
        name = f"{report_type.replace(' ', '_')}_report"
        return self.export_table(rows, REPORT_COLUMNS, name, report_type[:31] or 'Report')
