"""Sample tool definitions for seeding a demo catalog."""

SAMPLE_TOOLS = [
    # Filesystem
    {
        "name": "read_file",
        "description": "Read contents from a file on the local filesystem",
        "backendId": "filesystem",
        "category": "read",
        "inputSchema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Absolute path to the file"},
            },
            "required": ["path"],
        },
    },
    {
        "name": "write_file",
        "description": "Write content to a file on the local filesystem",
        "backendId": "filesystem",
        "category": "write",
        "inputSchema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Absolute path to the file"},
                "content": {"type": "string", "description": "Content to write"},
            },
            "required": ["path", "content"],
        },
    },
    {
        "name": "list_directory",
        "description": "List files and directories in a path",
        "backendId": "filesystem",
        "category": "read",
        "inputSchema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Directory path to list"},
            },
            "required": ["path"],
        },
    },
    {
        "name": "search_files",
        "description": "Search for files matching a pattern",
        "backendId": "filesystem",
        "category": "read",
        "inputSchema": {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Directory to search in"},
                "pattern": {"type": "string", "description": "Search pattern (glob or regex)"},
            },
            "required": ["path", "pattern"],
        },
    },
    # GitHub (read-only)
    {
        "name": "get_file_contents",
        "description": "Get the contents of a file or directory from a GitHub repository",
        "backendId": "github",
        "category": "read",
        "inputSchema": {
            "type": "object",
            "properties": {
                "owner": {"type": "string", "description": "Repository owner (username or organization)"},
                "repo": {"type": "string", "description": "Repository name"},
                "path": {"type": "string", "description": "Path to file/directory"},
            },
            "required": ["owner", "repo"],
        },
    },
    {
        "name": "search_code",
        "description": "Search for code across GitHub repositories using GitHub's native search",
        "backendId": "github",
        "category": "read",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query using GitHub code search syntax"},
            },
            "required": ["query"],
        },
    },
    {
        "name": "list_issues",
        "description": "List issues in a GitHub repository",
        "backendId": "github",
        "category": "read",
        "inputSchema": {
            "type": "object",
            "properties": {
                "owner": {"type": "string"},
                "repo": {"type": "string"},
            },
            "required": ["owner", "repo"],
        },
    },
    {
        "name": "get_commit",
        "description": "Get details for a commit from a GitHub repository",
        "backendId": "github",
        "category": "read",
        "inputSchema": {
            "type": "object",
            "properties": {
                "owner": {"type": "string"},
                "repo": {"type": "string"},
                "sha": {"type": "string", "description": "Commit SHA, branch name, or tag name"},
            },
            "required": ["owner", "repo", "sha"],
        },
    },
    # Browser (Chrome DevTools)
    {
        "name": "navigate_page",
        "description": "Navigate browser to a URL",
        "backendId": "chrome-devtools",
        "category": "browser",
        "inputSchema": {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "URL to navigate to"},
            },
            "required": ["url"],
        },
    },
    {
        "name": "take_screenshot",
        "description": "Take a screenshot of the current browser page or specific element",
        "backendId": "chrome-devtools",
        "category": "browser",
        "inputSchema": {
            "type": "object",
            "properties": {
                "fullPage": {"type": "boolean", "description": "Capture full scrollable page"},
            },
        },
    },
    {
        "name": "click",
        "description": "Click on an element in the browser page",
        "backendId": "chrome-devtools",
        "category": "browser",
        "inputSchema": {
            "type": "object",
            "properties": {
                "uid": {"type": "string", "description": "Element UID from page snapshot"},
            },
            "required": ["uid"],
        },
    },
    {
        "name": "fill",
        "description": "Type text into input field or select option",
        "backendId": "chrome-devtools",
        "category": "browser",
        "inputSchema": {
            "type": "object",
            "properties": {
                "uid": {"type": "string", "description": "Element UID"},
                "value": {"type": "string", "description": "Value to fill in"},
            },
            "required": ["uid", "value"],
        },
    },
]
