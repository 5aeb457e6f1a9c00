"""Microsoft Graph drive access: client, paths, auth and pass-throughs."""
