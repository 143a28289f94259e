SAMPLE_DEVICES = [
    {
        'name': 'Core Router R1',
        'type': 'router',
        'ip_address': '192.168.1.1',
        'status': 'online',
        'bandwidth': 450,
        'max_bandwidth': 1000,
        'model': 'Cisco ASR 1000',
        'location': 'Data Center A',
    },
    {
        'name': 'Switch SW-01',
        'type': 'switch',
        'ip_address': '192.168.1.10',
        'status': 'online',
        'bandwidth': 320,
        'max_bandwidth': 600,
        'model': 'HP ProCurve 2920',
        'location': 'Floor 1',
    },
    {
        'name': 'Access Point AP-01',
        'type': 'access_point',
        'ip_address': '192.168.1.20',
        'status': 'warning',
        'bandwidth': 890,
        'max_bandwidth': 1000,
        'model': 'Ubiquiti UniFi',
        'location': 'Floor 2',
    },
    {
        'name': 'Firewall FW-01',
        'type': 'firewall',
        'ip_address': '192.168.1.5',
        'status': 'offline',
        'bandwidth': 0,
        'max_bandwidth': 500,
        'model': 'Fortinet FortiGate',
        'location': 'DMZ',
    },
]

SAMPLE_SYSTEM_METRIC = {
    'active_devices': 127,
    'total_bandwidth': 2.4,
    'warnings': 3,
    'uptime': 99.9,
}

SAMPLE_IDS_RULES = [
    {
        'name': 'SSH Brute Force Detection',
        'description': 'Detects repeated SSH login attempts from the same IP',
        'pattern': r'^.*sshd.*Failed password.*from\s+(\d+\.\d+\.\d+\.\d+)',
        'severity': 'high',
        'enabled': True,
    },
    {
        'name': 'Port Scan Detection',
        'description': 'Detects suspicious port scanning activity',
        'pattern': 'TCP.*SYN.*multiple_ports',
        'severity': 'medium',
        'enabled': True,
    },
    {
        'name': 'Malware Communication',
        'description': 'Detects known malware communication patterns',
        'pattern': r'.*\.exe.*suspicious_domain\.com',
        'severity': 'critical',
        'enabled': True,
    },
    {
        'name': 'Unusual Traffic Volume',
        'description': 'Detects unusually high data transfer',
        'pattern': 'bandwidth_threshold_exceeded',
        'severity': 'medium',
        'enabled': True,
    },
]

# device_index points into SAMPLE_DEVICES
SAMPLE_SECURITY_EVENTS = [
    {
        'event_type': 'brute_force',
        'severity': 'high',
        'source_ip': '45.123.45.67',
        'target_ip': '192.168.1.1',
        'description': 'Multiple failed SSH login attempts detected',
        'status': 'new',
        'device_index': 0,
    },
    {
        'event_type': 'port_scan',
        'severity': 'medium',
        'source_ip': '178.62.199.34',
        'target_ip': '192.168.1.10',
        'description': 'Port scan activity from external IP detected',
        'status': 'investigating',
        'device_index': 1,
    },
    {
        'event_type': 'unusual_traffic',
        'severity': 'medium',
        'source_ip': '192.168.1.20',
        'target_ip': '203.0.113.5',
        'description': 'Unusually high outbound traffic',
        'status': 'new',
        'device_index': 2,
    },
    {
        'event_type': 'intrusion_attempt',
        'severity': 'critical',
        'source_ip': '198.51.100.23',
        'target_ip': '192.168.1.5',
        'description': 'Suspicious intrusion attempt against firewall detected',
        'status': 'resolved',
        'device_index': 3,
    },
]

SAMPLE_VAULT = {
    'name': 'Default Vault',
    'description': 'Main vault for network passwords and credentials',
}

SAMPLE_PASSWORD_ENTRIES = [
    {
        'title': 'Router Admin',
        'username': 'admin',
        'email': 'admin@company.com',
        'encrypted_password': 'encrypted_admin_password_123',
        'website': 'https://192.168.1.1',
        'notes': 'Core router administrator access',
        'category': 'Network Equipment',
        'is_favorite': True,
    },
    {
        'title': 'Switch Management',
        'username': 'netadmin',
        'email': 'network@company.com',
        'encrypted_password': 'encrypted_switch_password_456',
        'website': 'https://192.168.1.10',
        'notes': 'Switch management access',
        'category': 'Network Equipment',
        'is_favorite': False,
    },
    {
        'title': 'Firewall Console',
        'username': 'fwadmin',
        'encrypted_password': 'encrypted_firewall_password_789',
        'website': 'https://192.168.1.5',
        'notes': 'Firewall configuration access',
        'category': 'Security',
        'is_favorite': True,
    },
]
