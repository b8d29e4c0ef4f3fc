"""
GDPR PDF rendering - turns an export payload from GdprService.export_all into
a printable A4 document.
"""

import io
import logging
from datetime import datetime
from typing import Dict, List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from exceptions import DownstreamError

logger = logging.getLogger(__name__)

HEADER_COLOR = colors.HexColor('#1976D2')
LABEL_COLOR = colors.HexColor('#666666')

INFO_TABLE_STYLE = TableStyle([
    ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
    ('FONTNAME', (1, 0), (1, -1), 'Helvetica'),
    ('FONTSIZE', (0, 0), (-1, -1), 10),
    ('TEXTCOLOR', (0, 0), (0, -1), LABEL_COLOR),
    ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
    ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
])

DATA_TABLE_STYLE = TableStyle([
    ('BACKGROUND', (0, 0), (-1, 0), HEADER_COLOR),
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
    ('FONTSIZE', (0, 0), (-1, -1), 8),
    ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
    ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#F5F5F5')]),
    ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
])


def _text(value, default='-') -> str:
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return 'Yes' if value else 'No'
    return str(value)


def _cell(value, style) -> Paragraph:
    return Paragraph(escape(_text(value)), style)


def _data_table(header: List[str], rows: List[List], col_widths, cell_style) -> Table:
    data = [header] + [[_cell(v, cell_style) for v in row] for row in rows]
    table = Table(data, colWidths=col_widths, repeatRows=1)
    table.setStyle(DATA_TABLE_STYLE)
    return table


def build_gdpr_pdf(export: Dict) -> bytes:
    """
    Render the full export as PDF.

    Raises:
        DownstreamError: if reportlab fails to build the document
    """
    metadata = export.get('metadata', {})
    agent = export.get('agent') or {}
    clients = export.get('clients', [])
    properties = export.get('properties', [])
    call_notes = export.get('call_notes', [])
    statistics = export.get('statistics', {})

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title='GDPR Data Export',
                            leftMargin=0.6 * inch, rightMargin=0.6 * inch)
    story = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'ExportTitle',
        parent=styles['Heading1'],
        fontSize=20,
        textColor=HEADER_COLOR,
        spaceAfter=20,
        alignment=1
    )
    heading_style = ParagraphStyle(
        'ExportHeading',
        parent=styles['Heading2'],
        fontSize=13,
        textColor=HEADER_COLOR,
        spaceAfter=10
    )
    cell_style = ParagraphStyle('Cell', parent=styles['Normal'], fontSize=8, leading=10)

    story.append(Paragraph("GDPR Data Export", title_style))

    meta_rows = [
        ['Export Date:', _text(metadata.get('export_timestamp'))],
        ['Export Version:', _text(metadata.get('export_version'))],
        ['Data Controller:', _text(metadata.get('data_controller'))],
        ['Generated:', datetime.utcnow().strftime('%d.%m.%Y %H:%M UTC')],
    ]
    meta_table = Table(meta_rows, colWidths=[1.8 * inch, 5 * inch])
    meta_table.setStyle(INFO_TABLE_STYLE)
    story.append(meta_table)
    story.append(Spacer(1, 0.2 * inch))

    story.append(Paragraph(escape(_text(metadata.get('gdpr_statement'), '')), styles['Normal']))
    story.append(Spacer(1, 0.1 * inch))
    story.append(Paragraph(
        f"<b>Purpose of Processing:</b> {escape(_text(metadata.get('purpose_of_processing'), ''))}",
        styles['Normal']
    ))
    story.append(Spacer(1, 0.3 * inch))

    # Agent
    story.append(Paragraph("Agent Information", heading_style))
    agent_rows = [
        ['Name:', _text(agent.get('full_name'))],
        ['Email:', _text(agent.get('email'))],
        ['Phone:', _text(agent.get('phone'))],
        ['Language:', _text(agent.get('language_preference'))],
        ['Active:', _text(agent.get('is_active'))],
        ['Member Since:', _text(agent.get('created_at'))],
    ]
    agent_table = Table(agent_rows, colWidths=[1.8 * inch, 5 * inch])
    agent_table.setStyle(INFO_TABLE_STYLE)
    story.append(agent_table)
    story.append(Spacer(1, 0.2 * inch))

    stats_rows = [
        ['Clients:', _text(statistics.get('total_clients', 0))],
        ['Properties:', _text(statistics.get('total_properties', 0))],
        ['Call Notes:', _text(statistics.get('total_call_notes', 0))],
        ['Search Criteria:', _text(statistics.get('total_search_criteria', 0))],
        ['Property Images:', _text(statistics.get('total_property_images', 0))],
    ]
    stats_table = Table(stats_rows, colWidths=[1.8 * inch, 5 * inch])
    stats_table.setStyle(INFO_TABLE_STYLE)
    story.append(stats_table)
    story.append(Spacer(1, 0.3 * inch))

    # Clients
    story.append(Paragraph(f"Clients ({len(clients)})", heading_style))
    if clients:
        rows = [[c.get('full_name'), c.get('email'), c.get('phone'),
                 c.get('formatted_address'), c.get('gdpr_consent_given')] for c in clients]
        story.append(_data_table(['Name', 'Email', 'Phone', 'Address', 'Consent'], rows,
                                 [1.3 * inch, 1.7 * inch, 1.1 * inch, 2.1 * inch, 0.7 * inch],
                                 cell_style))
    else:
        story.append(Paragraph("No clients stored.", styles['Normal']))
    story.append(Spacer(1, 0.3 * inch))

    # Properties
    story.append(Paragraph(f"Properties ({len(properties)})", heading_style))
    if properties:
        rows = [[p.get('title'), p.get('property_type'), p.get('status'),
                 p.get('formatted_address'), p.get('price')] for p in properties]
        story.append(_data_table(['Title', 'Type', 'Status', 'Address', 'Price (EUR)'], rows,
                                 [1.9 * inch, 1.0 * inch, 0.9 * inch, 2.1 * inch, 1.0 * inch],
                                 cell_style))
    else:
        story.append(Paragraph("No properties stored.", styles['Normal']))
    story.append(Spacer(1, 0.3 * inch))

    # Call notes
    story.append(Paragraph(f"Call Notes ({len(call_notes)})", heading_style))
    if call_notes:
        rows = [[n.get('call_date'), n.get('client_name'), n.get('call_type'),
                 n.get('subject'), n.get('outcome')] for n in call_notes]
        story.append(_data_table(['Date', 'Client', 'Type', 'Subject', 'Outcome'], rows,
                                 [1.3 * inch, 1.3 * inch, 1.1 * inch, 2.1 * inch, 1.1 * inch],
                                 cell_style))
    else:
        story.append(Paragraph("No call notes stored.", styles['Normal']))

    try:
        doc.build(story)
    except Exception as e:
        logger.error(f"Error building GDPR PDF: {e}")
        raise DownstreamError(f"Failed to generate PDF export: {e}")

    pdf_bytes = buffer.getvalue()
    buffer.close()
    logger.debug(f"Rendered GDPR PDF ({len(pdf_bytes)} bytes)")
    return pdf_bytes
