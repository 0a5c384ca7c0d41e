"""User-facing strings for the terminal session."""

from typing import Dict

MESSAGES: Dict[str, str] = {
    "HELP": "Commands: /help  /features  /init  /auth  /destroy  /quit   |   tab/←/→ focus  ↑/↓ move  e edit  E document  t/d switch  ctrl+c quit",
    "CMD_HELP": "Show available commands",
    "CMD_FEATURES": "List all features from the MCP server",
    "CMD_INIT": "Initialize TDD-Pro in current directory",
    "CMD_AUTH": "Configure Claude API key for TDD-Pro agents",
    "CMD_QUIT": "Exit the TDD-Pro TUI",
    "UNKNOWN_COMMAND": "Unknown command: {command}",
    "LOADING_FEATURES": "Loading features...",
    "FEATURES_LOADED": "Loaded {count} features",
    "NO_FEATURES": "No features found",
    "NO_FEATURE_SELECTED": "No feature selected",
    "NO_TASK_SELECTED": "No task selected",
    "NO_DATA": "No data",
    "DOC_LOADING": "PRD is still loading",
    "DOC_NOT_LOADED": "PRD could not be loaded",
    "LOAD_FAILED": "Error loading {what}: {error}",
    "SWITCHED_TASKS": "Switched to Tasks view",
    "SWITCHED_DATA": "Switched to Feature Data view",
    "CANNOT_EDIT": "Cannot edit: {reason}",
    "EDIT_TASK_START": "Editing task: {title}",
    "TASK_SAVED": "Task edited: {title}",
    "TASK_EDIT_CANCELLED": "Task edit cancelled",
    "DOC_EDIT_START": "Opening PRD editor for feature: {name}",
    "DOC_EDIT_CANCELLED": "PRD editing cancelled",
    "DOC_SAVED": "PRD saved successfully",
    "DOC_EDIT_FAILED": "PRD edit failed: {error}",
    "FEATURE_SAVED": "Feature updated: {name}",
    "FEATURE_EDIT_CANCELLED": "Feature edit cancelled",
    "NO_CHANGES": "No changes to save",
    "SAVE_FAILED": "Error saving {what}: {error}",
    "ALREADY_INITIALIZED": "Project already initialized (found .tdd-pro in parent directory)",
    "INIT_FAILED": "Error creating .tdd-pro structure: {error}",
    "WIZARD_INTRO_TITLE": "MCP Configuration Setup",
    "WIZARD_INTRO_BODY": "TDD-Pro includes an MCP server for AI integration. Create configuration files for your editors?  [enter] continue",
    "WIZARD_CREATE_TITLE": "Create MCP configuration files?",
    "WIZARD_CREATE_BODY": "Creates .mcp.json so AI assistants can use TDD-Pro tools.  [y]es / [n]o",
    "WIZARD_CURSOR_TITLE": "Create Cursor configuration?",
    "WIZARD_CURSOR_BODY": "Creates .cursor/.mcp.json for the Cursor editor.  [y]es / [n]o",
    "WIZARD_VSCODE_TITLE": "Create VS Code configuration?",
    "WIZARD_VSCODE_BODY": "Creates .vscode/.mcp.json for VS Code extensions.  [y]es / [n]o",
    "WIZARD_SKIPPED": "TDD-Pro initialized successfully (MCP configuration skipped)",
    "WIZARD_DONE": "TDD-Pro initialized successfully!",
    "WIZARD_DONE_CREATED": "TDD-Pro initialized successfully! Created: {files}",
    "WIZARD_CANCELLED": "MCP configuration cancelled",
    "WIZARD_WRITE_FAILED": "Errors occurred: {error}",
    "AUTH_TITLE": "Claude API key",
    "AUTH_SAVED": "API key saved to {path}",
    "AUTH_CANCELLED": "Authentication cancelled",
    "DESTROY_TITLE": "Destroy TDD-Pro project?",
    "DESTROY_BODY": "This removes {target} permanently.  [y]es / [n]o",
    "DESTROY_DONE": "TDD-Pro project destroyed successfully",
    "DESTROY_FAILED": "Error removing .tdd-pro: {error}",
    "DESTROY_CANCELLED": "Destroy cancelled",
    "DESTROY_NOTHING": "No .tdd-pro directory found",
    "OVERLAY_BUSY": "Close the current dialog first",
    "AGENT_WAITING": "Waiting for reply...",
    "AGENT_FAILED": "Error: {error}",
    "AGENT_UNAVAILABLE": "Coaching agent is not configured",
    "PANEL_NAVIGATOR": "Workflow",
    "PANEL_DATA": "Feature Data",
    "PANEL_TASKS": "Tasks",
    "FOOTER_NORMAL": "tab focus · ↑↓ move · e edit · E document · / commands · ctrl+c quit",
    "FOOTER_PALETTE": "↑↓ select · tab complete · enter run · esc close",
    "EDITOR_MODIFIED": "modified",
    "FOOTER_EDITOR": "ctrl+s save · esc cancel · tab next field",
    "FOOTER_FORM": "enter save · tab/↑↓ switch field · esc cancel",
    "FOOTER_CONFIRM": "y confirm · n/esc cancel",
    "FOOTER_WIZARD": "y yes · n no · enter continue · esc abort",
}


def translate(key: str, **kwargs) -> str:
    template = MESSAGES.get(key, key)
    try:
        return template.format(**kwargs)
    except (KeyError, IndexError):
        return template


__all__ = ["MESSAGES", "translate"]
