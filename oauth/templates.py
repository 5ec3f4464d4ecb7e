"""HTML pages served by the local OAuth callback listener.

Placeholders are filled with str.format(); literal braces in the CSS are
doubled. Values are HTML-escaped by the caller.
"""

CALLBACK_PAGE = """
<!DOCTYPE html>
<html>
<head>
    <title>{title} - MCP Client</title>
    <style>
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
               background: #FAF9F7;
               min-height: 100vh; display: flex; align-items: center; justify-content: center; margin: 0; }}
        .container {{ background: white; padding: 40px; border-radius: 16px; box-shadow: 0 4px 24px rgba(0,0,0,0.08);
                     width: 100%; max-width: 400px; border: 1px solid #E5E4E0; text-align: center; }}
        h1 {{ margin: 0 0 8px; color: #1A1915; font-size: 24px; font-weight: 600; }}
        p {{ color: #6B6860; margin: 0; }}
        .error {{ background: #FEF2F2; color: #B91C1C; padding: 12px; border-radius: 8px; margin-top: 20px; border: 1px solid #FECACA; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>{title}</h1>
        <p>{message}</p>
        {detail}
    </div>
</body>
</html>
"""

ERROR_DETAIL = '<div class="error">{error}</div>'
