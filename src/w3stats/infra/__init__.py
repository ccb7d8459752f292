"""Infrastructure: analysis cache gate, decoder resolution, folder watcher."""
