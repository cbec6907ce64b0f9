"""Self-contained HTML slideshow used when a video cannot be encoded."""

import html
import json
from dataclasses import asdict, dataclass

from shared.enums import SlideTransition

HTML_CONTENT_TYPE = "text/html; charset=utf-8"

TRANSITION_CSS = {
    SlideTransition.NONE.value: "",
    SlideTransition.FADE.value: "transition: opacity 0.6s ease;",
    SlideTransition.SLIDE.value: "transition: transform 0.6s ease, opacity 0.6s ease;",
}


@dataclass
class SlideshowEntry:
    number: int
    title: str
    text: str
    duration: float
    audio_url: str | None = None


def _render_slide(entry: SlideshowEntry) -> str:
    paragraphs = "".join(
        f"<p>{html.escape(part)}</p>" for part in entry.text.split("\n\n") if part.strip()
    )
    return (
        f'<section class="slide" data-index="{entry.number - 1}">'
        f"<h1>{html.escape(entry.title)}</h1>{paragraphs}"
        f'<footer class="counter">{entry.number}</footer>'
        "</section>"
    )


def build_slideshow_html(
    title: str,
    entries: list[SlideshowEntry],
    transition: str = SlideTransition.FADE.value,
    dimensions: tuple[int, int] = (1920, 1080),
) -> str:
    """Render slides, timings and narration audio into one HTML document.

    Slides advance automatically after their narration ends, or after their
    duration when they have none. Space toggles play/pause and the arrow keys
    move between slides.
    """
    width, height = dimensions
    transition_css = TRANSITION_CSS.get(transition, TRANSITION_CSS[SlideTransition.FADE.value])
    offscreen = "transform: translateX(100%);" if transition == SlideTransition.SLIDE.value else ""
    timeline = json.dumps([asdict(entry) for entry in entries]).replace("</", "<\\/")
    slides_markup = "\n".join(_render_slide(entry) for entry in entries)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{html.escape(title)}</title>
<style>
  body {{ margin: 0; background: #111; color: #f9fafb; font-family: sans-serif; }}
  #stage {{ position: relative; width: 100vw; max-width: {width}px; aspect-ratio: {width} / {height};
            margin: 0 auto; overflow: hidden; background: #1f2937; }}
  .slide {{ position: absolute; inset: 0; padding: 6%; box-sizing: border-box;
            opacity: 0; {offscreen} {transition_css} }}
  .slide.active {{ opacity: 1; transform: none; }}
  .slide h1 {{ margin-top: 0; }}
  .counter {{ position: absolute; right: 4%; bottom: 4%; opacity: 0.6; }}
  #controls {{ text-align: center; padding: 12px; }}
  #controls button {{ font-size: 16px; margin: 0 6px; }}
</style>
</head>
<body>
<div id="stage">
{slides_markup}
</div>
<div id="controls">
  <button id="prev" type="button">&larr; Prev</button>
  <button id="toggle" type="button">Play</button>
  <button id="next" type="button">Next &rarr;</button>
</div>
<audio id="narration" preload="auto"></audio>
<script>
const timeline = {timeline};
const slides = document.querySelectorAll('.slide');
const audio = document.getElementById('narration');
const toggle = document.getElementById('toggle');
let current = 0;
let playing = false;
let timer = null;
let audioSlide = -1;

function clearTimer() {{ if (timer) {{ clearTimeout(timer); timer = null; }} }}

function show(index) {{
  if (!timeline.length) return;
  current = Math.max(0, Math.min(timeline.length - 1, index));
  slides.forEach((el, i) => el.classList.toggle('active', i === current));
  clearTimer();
  audio.pause();
  audioSlide = -1;
  if (playing) schedule();
}}

function advance() {{
  if (current >= timeline.length - 1) {{ pause(); return; }}
  show(current + 1);
}}

function schedule() {{
  const entry = timeline[current];
  if (entry.audio_url) {{
    // same slide after a pause: resume where it stopped
    if (audioSlide !== current) {{ audio.src = entry.audio_url; audioSlide = current; }}
    audio.onended = advance;
    audio.play().catch(() => {{ timer = setTimeout(advance, entry.duration * 1000); }});
  }} else {{
    timer = setTimeout(advance, entry.duration * 1000);
  }}
}}

function play() {{ playing = true; toggle.textContent = 'Pause'; clearTimer(); schedule(); }}
function pause() {{ playing = false; toggle.textContent = 'Play'; clearTimer(); audio.pause(); }}

toggle.addEventListener('click', () => (playing ? pause() : play()));
document.getElementById('prev').addEventListener('click', () => show(current - 1));
document.getElementById('next').addEventListener('click', () => show(current + 1));
document.addEventListener('keydown', (event) => {{
  if (event.key === 'ArrowRight' || event.key === 'PageDown') show(current + 1);
  else if (event.key === 'ArrowLeft' || event.key === 'PageUp') show(current - 1);
  else if (event.key === ' ') {{ event.preventDefault(); playing ? pause() : play(); }}
  else if (event.key === 'Home') show(0);
  else if (event.key === 'End') show(timeline.length - 1);
}});

show(0);
play();
</script>
</body>
</html>
"""
