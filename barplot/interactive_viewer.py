import streamlit.components.v1 as components


def render_interactive_chart(svg_string: str, width_px: float, height_px: float, height: int = 720):
    """
    Live preview of a chart scene with zoom controls.
    Double-clicking a tagged element flashes every element sharing its highlight keys.
    """

    html_code = f"""
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <style>
            body {{
                margin: 0;
                padding: 0;
                background-color: white;
                font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif;
            }}

            .chart-container {{
                width: 100%;
                height: {height - 60}px;
                overflow: auto;
                background: #f0f2f6;
                border-radius: 5px;
                box-shadow: inset 0 0 10px rgba(0,0,0,0.05);
                display: flex;
                justify-content: center;
                align-items: center;
            }}

            .svg-wrapper {{
                display: inline-block;
                box-shadow: 0 10px 25px rgba(0,0,0,0.1);
                transition: transform 0.2s ease;
                transform-origin: center center;
            }}

            svg {{ display: block; }}

            .flash {{
                outline: 2px solid #38bdf8;
                filter: drop-shadow(0 0 4px #38bdf8);
            }}

            .toolbar {{
                display: flex;
                gap: 6px;
                align-items: center;
                padding: 6px 0;
            }}

            .btn {{
                background: #475569;
                color: white;
                border: none;
                padding: 5px 10px;
                border-radius: 4px;
                cursor: pointer;
                font-size: 13px;
            }}
            .btn-blue {{ background: #2563eb; }}

            #status {{ font-size: 12px; color: #475569; margin-left: 10px; }}
        </style>
    </head>
    <body>
        <div class="toolbar">
            <button class="btn" onclick="zoomOut()" title="Zoom Out (20%)">➖</button>
            <span id="zoom-display">100%</span>
            <button class="btn" onclick="zoomIn()" title="Zoom In (20%)">➕</button>
            <button class="btn" onclick="resetZoom()">Reset</button>
            <button class="btn btn-blue" onclick="downloadSVG()" title="Download Scalable Vector">SVG</button>
            <span id="status"></span>
        </div>
        <div class="chart-container">
            <div class="svg-wrapper" id="wrapper">{svg_string}</div>
        </div>

        <script>
            const wrapper = document.getElementById('wrapper');
            const svgEl = wrapper.querySelector('svg');
            const FLASH_MS = 1100;
            let zoom = 1.0;

            function updateZoomDisplay() {{
                document.getElementById('zoom-display').innerText = Math.round(zoom * 100) + '%';
                wrapper.style.transform = 'scale(' + zoom + ')';
            }}

            function zoomIn() {{ zoom = Math.min(zoom * 1.2, 5); updateZoomDisplay(); }}
            function zoomOut() {{ zoom = Math.max(zoom / 1.2, 0.2); updateZoomDisplay(); }}
            function resetZoom() {{ zoom = 1.0; updateZoomDisplay(); }}

            function flash(keys) {{
                const hits = svgEl.querySelectorAll('[data-highlight]');
                hits.forEach((el) => {{
                    const own = el.getAttribute('data-highlight').split(' ');
                    if (own.some((k) => keys.includes(k))) {{
                        el.classList.add('flash');
                        setTimeout(() => el.classList.remove('flash'), FLASH_MS);
                    }}
                }});
            }}

            svgEl.addEventListener('dblclick', (event) => {{
                const target = event.target.closest('[data-highlight]');
                if (!target) return;
                event.stopPropagation();
                const keys = target.getAttribute('data-highlight').split(' ');
                const focus = target.getAttribute('data-focus');
                flash(keys);
                document.getElementById('status').innerText =
                    'Settings: ' + keys.join(', ') + (focus ? '  |  Field: ' + focus : '');
            }});

            function downloadSVG() {{
                const svgData = new XMLSerializer().serializeToString(svgEl);
                const blob = new Blob([svgData], {{type: "image/svg+xml;charset=utf-8"}});
                const link = document.createElement('a');
                link.download = 'barplot.svg';
                link.href = URL.createObjectURL(blob);
                link.click();
            }}

            // Fit wide charts into the frame on first paint
            window.onload = function() {{
                const frame = wrapper.parentElement.getBoundingClientRect();
                const fit = Math.min(frame.width / {width_px}, frame.height / {height_px}, 1);
                if (fit > 0) {{ zoom = fit; updateZoomDisplay(); }}
            }};
        </script>
    </body>
    </html>
    """

    components.html(html_code, height=height, scrolling=True)
