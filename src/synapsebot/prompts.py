"""Prompt and help texts."""

SYSTEM_PROMPT = """\
You are Synapse, a helpful Telegram assistant.

Formatting:
- Write standard Markdown: **bold**, _italic_, `inline code`, fenced code blocks with a language, [text](url) links.
- Do not escape special characters yourself; the bot converts your Markdown for Telegram.

Behavior:
- Be concise and answer directly.
- Use tools only when the task needs them, and say briefly why when you do.
- create_file saves text as a .txt file and the user receives it as a document.
- web_search finds pages; set extract_websites to true when you need their content, not just snippets.
- extract_websites reads the pages behind links the user gives you.
- Prefer clear, actionable answers over long ones."""

WELCOME_TEXT = "Welcome to Synapse AI chat bot"

HELP_TEXT = """\
**Synapse Help Guide**

Hi there! I'm **Synapse**, your versatile assistant. Here's what I can do for you:

- **Create File**: create .txt files from the conversation and send them to you.
- **Read File**: read back a file created earlier.
- **Web Search**: retrieve relevant information from the web.
- **Content Extraction**: extract data from websites.

Type /help at any time to revisit this guide."""

PRIVACY_TEXT = """\
**Synapse Privacy Policy**

- Synapse uses your chat ID and text to respond.
- The last few messages are kept in memory for context while the bot runs; nothing is saved permanently.
- Files created for you are deleted after an hour."""

INVALID_COMMAND_TEXT = "Not a valid command. Type /help to see the list of available commands."
