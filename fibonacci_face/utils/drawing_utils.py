import io
import math
import textwrap

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from PIL import Image, ImageDraw, ImageFont

from fibonacci_face import config
from fibonacci_face.utils.metrics_utils import fit_to_container, scale_overlay_lines


def get_font(size=15):
    """Load a TrueType font, falling back to Pillow's bundled one."""
    for name in ("arial.ttf", "DejaVuSans.ttf"):
        try:
            return ImageFont.truetype(name, size)
        except IOError:
            continue
    return ImageFont.load_default(size=size)


def normalize_color(color_tuple):
    """8-bit RGBA (0-255) to the 0-1 floats Matplotlib expects."""
    return tuple(c / 255.0 for c in color_tuple)


def text_size(font, text):
    bbox = font.getbbox(text)
    return bbox[2] - bbox[0], bbox[3] - bbox[1]


def draw_dashed_line(draw, p1, p2, fill, width, dash):
    """Draw a dashed segment from p1 to p2 with equal dash and gap length."""
    (x1, y1), (x2, y2) = p1, p2
    length = math.hypot(x2 - x1, y2 - y1)
    if length == 0:
        return
    ux, uy = (x2 - x1) / length, (y2 - y1) / length
    pos = 0.0
    while pos < length:
        end = min(pos + dash, length)
        draw.line([(x1 + ux * pos, y1 + uy * pos), (x1 + ux * end, y1 + uy * end)], fill=fill, width=width)
        pos += 2 * dash


def draw_line_label(draw, line, font):
    """Put a line's label on a rounded background at the segment midpoint."""
    label_text = line['label']
    text_width, text_height = text_size(font, label_text)
    padding = 4
    mid_x, mid_y = (line['x1'] + line['x2']) / 2, (line['y1'] + line['y2']) / 2
    pos = (mid_x - text_width / 2, mid_y - text_height - 2 * padding)
    bg_coords = [(pos[0] - padding, pos[1] - padding), (pos[0] + text_width + padding, pos[1] + text_height + padding)]
    draw.rounded_rectangle(bg_coords, radius=config.UI_CONFIG['geometry']['label_corner_radius'],
                           fill=config.UI_CONFIG['colors']['text_bg_on_image'])
    draw.text(pos, label_text, font=font, fill=config.UI_CONFIG['colors']['text_on_image'])


def render_annotated_image(image, overlay_lines, width=None):
    """
    Draw overlay lines on a copy of the photo at its displayed size.

    Args:
        image (PIL.Image.Image): The source photo.
        overlay_lines (list[OverlayLine]): Normalized lines from the analysis.
        width (int, optional): Displayed width; defaults to the natural width.

    Returns:
        PIL.Image.Image: RGB image of size fit_to_container(image.size, width).
    """
    display_w, display_h = fit_to_container(image.size, width or image.width)
    size = (max(1, round(display_w)), max(1, round(display_h)))
    annotated = image.convert('RGBA').resize(size, Image.Resampling.LANCZOS)

    # Lines go on a transparent layer so their alpha blends with the photo
    overlay = Image.new('RGBA', annotated.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay)
    font = get_font(max(10, size[0] // 40))
    for line in scale_overlay_lines(overlay_lines, display_w, display_h):
        draw_dashed_line(draw, (line['x1'], line['y1']), (line['x2'], line['y2']),
                         fill=config.UI_CONFIG['colors']['overlay_line'],
                         width=config.UI_CONFIG['line_widths']['overlay'],
                         dash=config.UI_CONFIG['geometry']['dash_length'])
        if line['label']:
            draw_line_label(draw, line, font)

    return Image.alpha_composite(annotated, overlay).convert("RGB")


def generate_feature_chart(feature_bars, width, height, background):
    """Horizontal score bars (0-100) for the exported report."""
    labels = [bar.feature for bar in feature_bars]
    values = [bar.score for bar in feature_bars]
    bg_color = normalize_color(Image.new('RGBA', (1, 1), background).getpixel((0, 0)))
    text_color = normalize_color(config.UI_CONFIG['colors']['report_text'])

    plt.style.use('dark_background')
    fig, ax = plt.subplots(figsize=(width / 100, height / 100), dpi=100)
    ax.barh(labels, [100] * len(values), color=normalize_color(config.UI_CONFIG['colors']['bar_track']), height=0.35)
    bars = ax.barh(labels, values, color=normalize_color(config.UI_CONFIG['colors']['bar_fill']), height=0.35)

    fig.patch.set_facecolor(bg_color)
    ax.set_facecolor(bg_color)
    for side in ('top', 'right', 'left', 'bottom'):
        ax.spines[side].set_visible(False)
    ax.tick_params(axis='x', which='both', bottom=False, labelbottom=False)
    ax.tick_params(axis='y', which='both', length=0, colors=text_color)
    ax.set_xlim(0, 112)
    ax.invert_yaxis()

    for bar in bars:
        bar_width = bar.get_width()
        ax.text(102, bar.get_y() + bar.get_height() / 2, f'{bar_width:.0f}%', va='center', ha='left',
                color=normalize_color(config.UI_CONFIG['colors']['report_header']))

    plt.tight_layout(pad=0.8)
    buf = io.BytesIO()
    plt.savefig(buf, format='PNG', facecolor=bg_color, dpi=100)
    buf.seek(0)
    chart_image = Image.open(buf).convert('RGBA')
    plt.close(fig)
    return chart_image


def create_report_image(view, annotated=None, background=None, scale=1):
    """
    Rasterize the rendered report into one bitmap.

    Args:
        view (ReportView): The mapped report (scores, feedback, detail rows).
        annotated (PIL.Image.Image, optional): Photo with overlay lines.
        background (str): Fill colour of the report area.
        scale (int): Pixel density multiplier.

    Returns:
        PIL.Image.Image: RGB image whose height fits the content.
    """
    colors = config.UI_CONFIG['colors']
    background = background or config.REPORT_CONFIG['background']
    W = config.REPORT_CONFIG['width'] * scale
    p, ls = 24 * scale, 22 * scale
    inner_w = W - 2 * p

    font_title, font_h2 = get_font(22 * scale), get_font(16 * scale)
    font_body, font_small, font_score = get_font(13 * scale), get_font(11 * scale), get_font(48 * scale)

    photo = None
    if annotated is not None:
        photo_w, photo_h = fit_to_container(annotated.size, inner_w)
        photo = annotated.resize((round(photo_w), max(1, round(photo_h))), Image.Resampling.LANCZOS)

    chart = None
    if view.feature_bars:
        chart = generate_feature_chart(view.feature_bars, inner_w, (36 * len(view.feature_bars) + 24) * scale, background)

    chars_per_line = max(20, int(inner_w / (7 * scale)))
    feedback_lines = textwrap.wrap(f"“{view.feedback}”", width=chars_per_line) if view.feedback else []
    rows = view.detail_rows if view.details_visible else []

    H = (p * 2 + 60 * scale + (photo.height + p if photo else 0) + 130 * scale
         + (chart.height + p if chart else 0) + (len(feedback_lines) + 3) * ls + (len(rows) + 4) * ls)
    image = Image.new('RGBA', (W, H), background)
    draw = ImageDraw.Draw(image)

    y = p
    draw.text((p, y), "Analysis Results", font=font_title, fill=colors['report_header']); y += 40 * scale

    if photo is not None:
        image.paste(photo, (p, y)); y += photo.height + p

    # Overall score panel
    draw.rounded_rectangle([(p, y), (W - p, y + 110 * scale)], radius=8 * scale, fill=colors['report_panel'])
    caption = "Overall Golden Ratio Score"
    cw, _ = text_size(font_small, caption)
    draw.text(((W - cw) / 2, y + 12 * scale), caption, font=font_small, fill=colors['report_muted'])
    sw, _ = text_size(font_score, view.overall_score_text)
    draw.text(((W - sw) / 2, y + 36 * scale), view.overall_score_text, font=font_score, fill=colors['report_header'])
    y += 110 * scale + p

    if chart is not None:
        image.paste(chart, (p, y), chart); y += chart.height + p

    draw.text((p, y), "AI Feedback", font=font_h2, fill=colors['report_muted']); y += ls + 4 * scale
    for line in feedback_lines:
        draw.text((p, y), line, font=font_body, fill=colors['report_text']); y += ls
    y += ls

    if rows:
        draw.text((p, y), "Detailed Ratios", font=font_h2, fill=colors['report_muted']); y += ls + 4 * scale
        col_value, col_dev = p + inner_w // 2, W - p - 80 * scale
        for label, x in (("Ratio Name", p), ("Value", col_value), ("Deviation", col_dev)):
            draw.text((x, y), label, font=font_small, fill=colors['report_muted'])
        y += ls
        draw.line([(p, y - 4 * scale), (W - p, y - 4 * scale)], fill=colors['report_divider'], width=config.UI_CONFIG['line_widths']['divider'] * scale)
        for row in rows:
            draw.text((p, y), row.ratio_name, font=font_small, fill=colors['report_text'])
            draw.text((col_value, y), row.value, font=font_small, fill=colors['report_text'])
            draw.text((col_dev, y), row.deviation_text, font=font_small, fill=tuple(row.color))
            y += ls

    return image.crop((0, 0, W, min(H, y + p))).convert("RGB")
