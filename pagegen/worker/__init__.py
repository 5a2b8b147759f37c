"""Page generation workers.

- poller: claims pages over HTTP (job_dispatch_mode=poll)
- queue_consumer: reads page messages from SQS (job_dispatch_mode=sqs)
"""
