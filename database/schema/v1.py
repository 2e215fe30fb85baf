"""Schema v1 - Initial database schema.

This version includes tables for:
- Users and seller stores
- Products (beats) with their embedded lease tier catalog
- The purchase ledger
- Beat licenses with their frozen terms
- Store customers (CRM)

Beat licenses keep no foreign key to products or stores so that a license
outlives the beat or store it was issued for.
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'users',
            'columns': [
                {'name': 'id', 'type': 'TEXT', 'primary_key': True},
                {'name': 'email', 'type': 'TEXT'},
                {'name': 'name', 'type': 'TEXT'},
                {'name': 'first_name', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ]
        },
        {
            'name': 'stores',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'user_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'slug', 'type': 'TEXT', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_stores_user', 'columns': ['user_id']},
                {'name': 'idx_stores_slug', 'columns': ['slug'], 'unique': True}
            ]
        },
        {
            'name': 'products',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'user_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'title', 'type': 'TEXT', 'nullable': False},
                {'name': 'image_url', 'type': 'TEXT'},
                {'name': 'download_url', 'type': 'TEXT'},
                {'name': 'demo_audio_url', 'type': 'TEXT'},
                {'name': 'mp3_url', 'type': 'TEXT'},
                {'name': 'wav_url', 'type': 'TEXT'},
                {'name': 'stems_url', 'type': 'TEXT'},
                {'name': 'trackouts_url', 'type': 'TEXT'},
                {'name': 'preview_url', 'type': 'TEXT'},
                {'name': 'audio_url', 'type': 'TEXT'},
                {'name': 'bpm', 'type': 'INT8'},
                {'name': 'musical_key', 'type': 'TEXT'},
                {'name': 'beat_lease_config', 'type': 'JSONB'},
                {'name': 'is_published', 'type': 'BOOL', 'nullable': False, 'default': 'false'},
                {'name': 'exclusive_sold_at', 'type': 'TIMESTAMPTZ'},
                {'name': 'exclusive_sold_to', 'type': 'TEXT'},
                {'name': 'exclusive_purchase_id', 'type': 'UUID'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_products_user', 'columns': ['user_id']},
                {'name': 'idx_products_published', 'columns': ['is_published']}
            ]
        },
        {
            'name': 'purchases',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'user_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'product_id', 'type': 'UUID', 'nullable': False},
                {'name': 'store_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'admin_user_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'amount', 'type': 'DECIMAL', 'nullable': False},
                {'name': 'currency', 'type': 'TEXT', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'nullable': False},
                {'name': 'payment_method', 'type': 'TEXT'},
                {'name': 'transaction_id', 'type': 'TEXT'},
                {'name': 'product_type', 'type': 'TEXT', 'nullable': False},
                {'name': 'access_granted', 'type': 'BOOL', 'nullable': False, 'default': 'false'},
                {'name': 'download_count', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'last_accessed_at', 'type': 'TIMESTAMPTZ'},
                {'name': 'beat_license_id', 'type': 'UUID'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_purchases_user', 'columns': ['user_id']},
                {'name': 'idx_purchases_product', 'columns': ['product_id']},
                {'name': 'idx_purchases_store', 'columns': ['store_id']}
            ]
        },
        {
            'name': 'beat_licenses',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'purchase_id', 'type': 'UUID', 'nullable': False},
                {'name': 'beat_id', 'type': 'UUID', 'nullable': False},
                {'name': 'user_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'store_id', 'type': 'UUID', 'nullable': False},
                {'name': 'tier_type', 'type': 'TEXT', 'nullable': False},
                {'name': 'tier_name', 'type': 'TEXT', 'nullable': False},
                {'name': 'price', 'type': 'DECIMAL', 'nullable': False},
                {'name': 'distribution_limit', 'type': 'INT8'},
                {'name': 'streaming_limit', 'type': 'INT8'},
                {'name': 'commercial_use', 'type': 'BOOL'},
                {'name': 'music_video_use', 'type': 'BOOL'},
                {'name': 'radio_broadcasting', 'type': 'BOOL'},
                {'name': 'stems_included', 'type': 'BOOL'},
                {'name': 'credit_required', 'type': 'BOOL'},
                {'name': 'delivered_files', 'type': 'JSONB', 'nullable': False},
                {'name': 'buyer_email', 'type': 'TEXT', 'nullable': False},
                {'name': 'buyer_name', 'type': 'TEXT'},
                {'name': 'beat_title', 'type': 'TEXT', 'nullable': False},
                {'name': 'producer_name', 'type': 'TEXT', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'contract_generated_at', 'type': 'TIMESTAMPTZ'}
            ],
            'foreign_keys': [
                {'columns': ['purchase_id'], 'references': 'purchases(id)'}
            ],
            'indexes': [
                {'name': 'idx_beat_licenses_purchase', 'columns': ['purchase_id'], 'unique': True},
                {'name': 'idx_beat_licenses_user', 'columns': ['user_id', 'created_at']},
                {'name': 'idx_beat_licenses_store', 'columns': ['store_id', 'created_at']},
                {'name': 'idx_beat_licenses_user_beat_tier', 'columns': ['user_id', 'beat_id', 'tier_type'], 'unique': True},
                {
                    'name': 'idx_beat_licenses_one_exclusive',
                    'columns': ['beat_id'],
                    'unique': True,
                    'where': "tier_type = 'exclusive'"
                }
            ]
        },
        {
            'name': 'customers',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'email', 'type': 'TEXT', 'nullable': False},
                {'name': 'store_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'admin_user_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'name', 'type': 'TEXT', 'nullable': False},
                {'name': 'type', 'type': 'TEXT', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'nullable': False},
                {'name': 'total_spent', 'type': 'DECIMAL', 'nullable': False, 'default': '0'},
                {'name': 'last_activity', 'type': 'TIMESTAMPTZ'},
                {'name': 'source', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_customers_email_store', 'columns': ['email', 'store_id'], 'unique': True}
            ]
        }
    ],
    'migrations': []
}
