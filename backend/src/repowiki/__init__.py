"""repowiki: subsystem analysis and cited wiki pages for GitHub repositories."""
