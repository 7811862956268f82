# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""gcs2drive schemas."""
